"""
Coordinate Cache

Persistent address -> coordinate store. Keys are CACHE_KEY_PREFIX plus the
normalized address, so two raw addresses that normalize identically share
one entry. Last write wins; entries never expire.
"""

import os
import sqlite3
from typing import Protocol

from address_normalizer.core import normalize
from common.config import CACHE_DB_PATH, CACHE_KEY_PREFIX
from common.geocoding import Coordinates, parse_coordinates
from common.logging_config import get_logger

logger = get_logger("coordinate_cache")


class CoordinateCache(Protocol):
    """Key/value store mapping addresses to resolved coordinates."""

    def get(self, address: str) -> Coordinates | None: ...

    def put(self, address: str, coordinates: Coordinates) -> None: ...


def cache_key(address: str, prefix: str = CACHE_KEY_PREFIX) -> str | None:
    """Build the storage key for an address, or None if it normalizes to nothing."""
    normalized = normalize(address)
    if not normalized:
        return None
    return f"{prefix}{normalized}"


class SQLiteCoordinateCache:
    """
    Durable coordinate cache backed by a local SQLite file.

    Table structure:
        geocode_cache(
            cache_key TEXT PRIMARY KEY,   -- prefix + normalized address
            lat REAL,
            lng REAL,
            updated_at TIMESTAMP
        )
    """

    def __init__(self, db_path: str = CACHE_DB_PATH, key_prefix: str = CACHE_KEY_PREFIX):
        self.db_path = db_path
        self.key_prefix = key_prefix
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        con = self._connect()
        try:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS geocode_cache (
                    cache_key TEXT PRIMARY KEY,
                    lat REAL NOT NULL,
                    lng REAL NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            con.commit()
        finally:
            con.close()

    def get(self, address: str) -> Coordinates | None:
        key = cache_key(address, self.key_prefix)
        if key is None:
            return None
        con = self._connect()
        try:
            row = con.execute(
                "SELECT lat, lng FROM geocode_cache WHERE cache_key = ?", (key,)
            ).fetchone()
        finally:
            con.close()
        if row is None:
            return None
        return parse_coordinates(row[0], row[1])

    def put(self, address: str, coordinates: Coordinates) -> None:
        key = cache_key(address, self.key_prefix)
        if key is None:
            logger.debug(f"Not caching empty address: {address!r}")
            return
        con = self._connect()
        try:
            con.execute(
                "INSERT OR REPLACE INTO geocode_cache (cache_key, lat, lng, updated_at) "
                "VALUES (?, ?, ?, CURRENT_TIMESTAMP)",
                (key, coordinates["lat"], coordinates["lng"]),
            )
            con.commit()
        finally:
            con.close()
        logger.debug(f"Cached {key} -> ({coordinates['lat']}, {coordinates['lng']})")

    def __len__(self) -> int:
        con = self._connect()
        try:
            return con.execute("SELECT COUNT(*) FROM geocode_cache").fetchone()[0]
        finally:
            con.close()


class InMemoryCoordinateCache:
    """Process-local coordinate cache with the same key semantics."""

    def __init__(self, key_prefix: str = CACHE_KEY_PREFIX):
        self.key_prefix = key_prefix
        self._entries: dict[str, Coordinates] = {}

    def get(self, address: str) -> Coordinates | None:
        key = cache_key(address, self.key_prefix)
        if key is None:
            return None
        cached = self._entries.get(key)
        return dict(cached) if cached is not None else None

    def put(self, address: str, coordinates: Coordinates) -> None:
        key = cache_key(address, self.key_prefix)
        if key is None:
            return
        self._entries[key] = {"lat": coordinates["lat"], "lng": coordinates["lng"]}

    def clear(self) -> None:
        """Clear every cached coordinate."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
