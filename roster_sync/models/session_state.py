from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .record import SAMPLE_RECORDS, Record

if TYPE_CHECKING:
    from ..services.view import SortSpec

"""Session context object.

Process-wide, in-memory only. The SyncOrchestrator owns and mutates it; the
view layer only reads ``records`` and the view controls.
"""

__all__ = [
    "Role",
    "SyncState",
    "LoadSource",
    "SessionState",
]


class Role(Enum):
    VIEWER = "viewer"
    ADMIN = "admin"


class SyncState(Enum):
    """Orchestrator state machine.

    Transitions: uninitialized -> loading -> ready; import: ready -> loading ->
    (ready | error). error keeps the last-known-good record set.
    """
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class LoadSource(Enum):
    """Where the current authoritative set came from."""
    CLOUD = "cloud"
    IMPORT = "import"
    CACHE = "cache"
    SAMPLE_UNCONFIGURED = "sample_unconfigured"
    SAMPLE_ABSENT = "sample_absent"  # store reachable, document missing
    SAMPLE_FAILED = "sample_failed"  # read failed / timed out

    @property
    def is_sample(self) -> bool:
        return self.name.startswith("SAMPLE_")


@dataclass
class SessionState:
    role: Role = Role.VIEWER
    records: tuple[Record, ...] = ()
    last_updated: str | None = None
    sync_state: SyncState = SyncState.UNINITIALIZED
    load_source: LoadSource | None = None
    last_error: str | None = None  # visible error (dismissible)
    notice: str | None = None  # informational, non-fatal
    auth_error: str | None = None  # local to the login attempt
    search_term: str = ""
    sort: SortSpec | None = None

    def seed_sample(self, source: LoadSource) -> None:
        self.records = SAMPLE_RECORDS
        self.load_source = source
