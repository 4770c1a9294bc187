from __future__ import annotations

"""Snapshot store error taxonomy.

StoreError
 ├── NotConfigured     no usable connection settings (offline/demo mode)
 ├── PermissionDenied  the database rejected the operation (privileges / auth)
 └── StoreTimeout      read did not finish within the configured bound
"""

__all__ = [
    "StoreError",
    "NotConfigured",
    "PermissionDenied",
    "StoreTimeout",
]


class StoreError(Exception):
    """Any snapshot persistence failure."""


class NotConfigured(StoreError):
    pass


class PermissionDenied(StoreError):
    pass


class StoreTimeout(StoreError):
    pass
