"""SQLite persistence for store locations and collection runs"""

from .database import Database, PersistenceError
from .location_store import LocationInput, LocationStore, UpsertCounts
from .audit_store import AuditStore

__all__ = [
    'AuditStore',
    'Database',
    'LocationInput',
    'LocationStore',
    'PersistenceError',
    'UpsertCounts',
]
