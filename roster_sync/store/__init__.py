"""Remote snapshot store (single-slot document persistence)."""

from .errors import NotConfigured, PermissionDenied, StoreError, StoreTimeout
from .snapshot_store import PostgresSnapshotStore, ReadStatus, SnapshotStore, is_placeholder_dsn

__all__ = [
    "StoreError",
    "NotConfigured",
    "PermissionDenied",
    "StoreTimeout",
    "SnapshotStore",
    "PostgresSnapshotStore",
    "ReadStatus",
    "is_placeholder_dsn",
]
