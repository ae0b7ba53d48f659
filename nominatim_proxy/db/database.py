"""
Database Module
-------------
Handles the SQLite connection, the ORM model and the address cache operations.
Uses SQLAlchemy; the composite (geohash, language) key makes every write insert-if-absent.
"""
import os
import time
import logging
from typing import Optional

from sqlalchemy import create_engine, Column, String, BigInteger
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from nominatim_proxy.exceptions import StorageError
from nominatim_proxy.models.address import ADDRESS_FIELDS, Address

# Get logger
logger = logging.getLogger(__name__)

Base = declarative_base()

# Define the cached location table structure
class LocationDB(Base):
    __tablename__ = "locations"
    # Composite key is the cache key (geohash + language)
    geohash = Column(String, primary_key=True)
    language = Column(String, primary_key=True)
    created_at = Column(BigInteger, nullable=True)  # epoch milliseconds
    road = Column(String, nullable=True)
    pedestrian = Column(String, nullable=True)
    footway = Column(String, nullable=True)
    cycleway = Column(String, nullable=True)
    residential = Column(String, nullable=True)
    square = Column(String, nullable=True)
    place = Column(String, nullable=True)
    neighbourhood = Column(String, nullable=True)
    suburb = Column(String, nullable=True)
    city_district = Column(String, nullable=True)
    hamlet = Column(String, nullable=True)
    village = Column(String, nullable=True)
    town = Column(String, nullable=True)
    city = Column(String, nullable=True)
    municipality = Column(String, nullable=True)
    borough = Column(String, nullable=True)
    county = Column(String, nullable=True)
    state = Column(String, nullable=True)
    province = Column(String, nullable=True)
    state_district = Column(String, nullable=True)
    postcode = Column(String, nullable=True)
    country = Column(String, nullable=True)
    country_code = Column(String, nullable=True)

    def to_address(self):
        return Address(**{field: getattr(self, field) for field in ADDRESS_FIELDS})


class LocationCache:
    """Cache access layer backed by SQLite."""

    def __init__(self, db_path):
        self.db_path = db_path
        # Requests are served from a thread pool, connections must cross threads
        self.engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
        )
        self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)

    def create_tables(self):
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info(f"Cache tables created in {self.db_path} (if they didn't exist previously).")
        except SQLAlchemyError as e:
            logger.error(f"Error creating cache tables: {e}")
            raise StorageError(f"Could not initialize cache at {self.db_path}") from e

    def find_address(self, geohash: str, language: str) -> Optional[Address]:
        """Look up the cached address for the exact (geohash, language) key."""
        db = self.SessionLocal()
        try:
            location = db.query(LocationDB).filter(
                LocationDB.geohash == geohash,
                LocationDB.language == language
            ).first()
            return location.to_address() if location else None
        except SQLAlchemyError as e:
            logger.error(f"Error reading cache entry {geohash} ({language}): {e}")
            raise StorageError(f"Could not read cache entry {geohash} ({language})") from e
        finally:
            db.close()

    def save_address(self, geohash: str, language: str, address: Address):
        """
        Store the address unless the key already exists.

        An existing entry is never overwritten; a second save for the same key
        is a silent no-op, even if the address differs.
        """
        values = {field: getattr(address, field) for field in ADDRESS_FIELDS}
        values.update(
            geohash=geohash,
            language=language,
            created_at=int(time.time() * 1000),
        )
        statement = sqlite_insert(LocationDB).values(**values).on_conflict_do_nothing(
            index_elements=["geohash", "language"]
        )

        db = self.SessionLocal()
        try:
            db.execute(statement)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error saving cache entry {geohash} ({language}): {e}")
            raise StorageError(f"Could not save cache entry {geohash} ({language})") from e
        finally:
            db.close()


def init_cache(db_path) -> LocationCache:
    """Open (creating if missing) the cache database and make sure the schema exists."""
    directory = os.path.dirname(os.path.abspath(db_path))
    os.makedirs(directory, exist_ok=True)

    cache = LocationCache(db_path)
    cache.create_tables()
    return cache
