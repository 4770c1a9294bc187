"""Domain models for the roster sync engine.

Record / Snapshot are the persisted shapes; SessionState is the in-memory
context object owned by the SyncOrchestrator.
"""

from .error_record import ErrorRecord
from .record import SAMPLE_RECORDS, Record, Snapshot, StatusClass, classify_status
from .session_state import LoadSource, Role, SessionState, SyncState

__all__ = [
    # Persisted shapes
    "Record",
    "Snapshot",
    "SAMPLE_RECORDS",
    # Status classification
    "StatusClass",
    "classify_status",
    # Session
    "Role",
    "SyncState",
    "LoadSource",
    "SessionState",
    "ErrorRecord",
]
