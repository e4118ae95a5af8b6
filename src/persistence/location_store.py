"""Reconciliation of scraped locations against the stored index.

Rows are keyed by ``(brand_id, location_key)`` and never deleted. An
upsert inserts new keys and refreshes seen ones (re-activating them); a
deactivation pass marks every active key the latest accepted scrape did
not include as inactive.

Calling ``deactivate_missing`` with an empty key list deactivates every
active location of the brand. Callers must only reconcile after a scrape
has passed the trust gate.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from src.locator.identity import location_key
from src.locator.types import RawLocation
from src.persistence.database import Database, format_timestamp, utc_now
from src.shared.constants import GRID

__all__ = [
    'DEFAULT_COUNTRY',
    'LocationInput',
    'LocationStore',
    'UpsertCounts',
]

DEFAULT_COUNTRY = "US"

BrandId = Union[int, str]


@dataclass(frozen=True)
class LocationInput:
    """A scraped location together with its derived identity key."""
    location_key: str
    location: RawLocation

    @classmethod
    def from_raw(cls, brand_id: BrandId, location: RawLocation) -> 'LocationInput':
        return cls(location_key(brand_id, location), location)


@dataclass(frozen=True)
class UpsertCounts:
    new: int
    updated: int


def _round(value: Optional[float]) -> Optional[float]:
    return round(value, GRID.STORE_PRECISION) if value is not None else None


def _row(brand_id: BrandId, item: LocationInput, now: str) -> Tuple[Any, ...]:
    loc = item.location
    return (
        brand_id,
        item.location_key,
        loc.name,
        loc.address_line1,
        loc.city,
        loc.state,
        loc.zip,
        loc.country or DEFAULT_COUNTRY,
        _round(loc.latitude),
        _round(loc.longitude),
        loc.phone,
        loc.external_id,
        loc.locator_source,
        loc.raw_payload_json(),
        now,
        now,
    )


_UPSERT_SQL = """
INSERT INTO store_locations (
    brand_id, location_key, name,
    address_line1, city, state, zip, country,
    latitude, longitude, phone,
    external_id, locator_source, raw_payload,
    first_seen_at, last_seen_at, is_active
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)
ON CONFLICT(brand_id, location_key) DO UPDATE SET
    name = excluded.name,
    address_line1 = excluded.address_line1,
    city = excluded.city,
    state = excluded.state,
    zip = excluded.zip,
    country = excluded.country,
    latitude = excluded.latitude,
    longitude = excluded.longitude,
    phone = excluded.phone,
    external_id = excluded.external_id,
    locator_source = excluded.locator_source,
    raw_payload = excluded.raw_payload,
    last_seen_at = excluded.last_seen_at,
    is_active = 1
"""


class LocationStore:
    """Store of brand locations backed by SQLite.

    Args:
        database: Open database shared with the audit store
        clock: Returns the current UTC time; overridable in tests
    """

    def __init__(self, database: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self.db = database
        self.clock = clock

    def _existing_keys(self, cursor, brand_id: BrandId, keys: Iterable[str]) -> Set[str]:
        existing: Set[str] = set()
        keys = list(keys)
        # Stay well under SQLite's bound-parameter limit
        for start in range(0, len(keys), 500):
            chunk = keys[start:start + 500]
            placeholders = ",".join("?" * len(chunk))
            cursor.execute(
                f"SELECT location_key FROM store_locations "
                f"WHERE brand_id = ? AND location_key IN ({placeholders})",
                (brand_id, *chunk),
            )
            existing.update(row[0] for row in cursor.fetchall())
        return existing

    def upsert_locations(self, brand_id: BrandId, items: List[LocationInput]) -> UpsertCounts:
        """Insert new keys and refresh seen ones in one transaction.

        Items repeating a key already in the batch are ignored, so the
        counts always describe distinct rows.

        Raises:
            PersistenceError: If the write fails (nothing is committed)
        """
        unique: Dict[str, LocationInput] = {}
        for item in items:
            if item.location_key in unique:
                logging.debug(f"Duplicate location key in batch for brand {brand_id}: {item.location.name}")
                continue
            unique[item.location_key] = item
        if not unique:
            return UpsertCounts(new=0, updated=0)

        now = format_timestamp(self.clock())
        with self.db.transaction() as cursor:
            existing = self._existing_keys(cursor, brand_id, unique.keys())
            cursor.executemany(_UPSERT_SQL, [_row(brand_id, item, now) for item in unique.values()])

        counts = UpsertCounts(new=len(unique) - len(existing), updated=len(existing))
        logging.debug(f"Upserted brand {brand_id}: {counts.new} new, {counts.updated} updated")
        return counts

    def deactivate_missing(self, brand_id: BrandId, active_keys: Iterable[str]) -> int:
        """Mark active rows of the brand whose key is not in ``active_keys`` inactive.

        Returns:
            Number of rows deactivated
        """
        keep = set(active_keys)
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT location_key FROM store_locations WHERE brand_id = ? AND is_active = 1",
                (brand_id,),
            )
            missing = [row[0] for row in cursor.fetchall() if row[0] not in keep]
            cursor.executemany(
                "UPDATE store_locations SET is_active = 0 WHERE brand_id = ? AND location_key = ?",
                [(brand_id, key) for key in missing],
            )
        if missing:
            logging.debug(f"Deactivated {len(missing)} locations for brand {brand_id}")
        return len(missing)

    def get_active_location_keys(self, brand_id: BrandId) -> Set[str]:
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT location_key FROM store_locations WHERE brand_id = ? AND is_active = 1",
                (brand_id,),
            )
            return {row[0] for row in cursor.fetchall()}

    def count_active(self, brand_id: Optional[BrandId] = None) -> int:
        with self.db.transaction() as cursor:
            if brand_id is None:
                cursor.execute("SELECT COUNT(*) FROM store_locations WHERE is_active = 1")
            else:
                cursor.execute(
                    "SELECT COUNT(*) FROM store_locations WHERE brand_id = ? AND is_active = 1",
                    (brand_id,),
                )
            return cursor.fetchone()[0]

    def list_new_locations_since(
        self, since: datetime, brand_id: Optional[BrandId] = None
    ) -> List[Dict[str, Any]]:
        """Active locations first seen at or after ``since``, newest first."""
        query = (
            "SELECT * FROM store_locations WHERE is_active = 1 AND first_seen_at >= ?"
        )
        params: List[Any] = [format_timestamp(since)]
        if brand_id is not None:
            query += " AND brand_id = ?"
            params.append(brand_id)
        query += " ORDER BY first_seen_at DESC, brand_id, name"
        with self.db.transaction() as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def get_location(self, brand_id: BrandId, key: str) -> Optional[Dict[str, Any]]:
        with self.db.transaction() as cursor:
            cursor.execute(
                "SELECT * FROM store_locations WHERE brand_id = ? AND location_key = ?",
                (brand_id, key),
            )
            row = cursor.fetchone()
        return dict(row) if row is not None else None
