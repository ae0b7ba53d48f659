"""
Data Models Module
----------------
Contains Pydantic models for data validation and serialization.
Defines the address record cached per geohash and language, and the upstream/API response shapes.
"""
