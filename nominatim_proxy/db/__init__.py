"""
Database Module
-------------
Handles database connections, ORM models, and database operations.
Uses SQLAlchemy for SQLite interaction and defines the schema of the append-only address cache.
"""
