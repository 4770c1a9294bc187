from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..config.loader import DisplayConfig
from ..excel.reader import ParseError, RosterSource, ingest_roster
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.record import Snapshot
from ..models.session_state import LoadSource, Role, SessionState, SyncState
from ..store.errors import NotConfigured, PermissionDenied, StoreError, StoreTimeout
from ..store.snapshot_store import ReadStatus, SnapshotStore
from .auth import AuthError, Authenticator
from .view import DerivedView, SortDirection, SortSpec, derive_view

logger = logging.getLogger(__name__)

"""Sync orchestration.

Owns the SessionState (authoritative record set, lastUpdated, sync state, view
controls) and coordinates:

- startup: load the remote snapshot once, fall back to sample data on any
  failure; always ends in READY
- authentication: delegated to an Authenticator; role is session-only
- import (admin only): parse -> write -> swap the record set. The swap happens
  only after a successful write, so a failure leaves the previous set intact

Nothing here is fatal to the process. Re-entrant imports are not guarded;
callers disable the trigger while one is in flight.
"""

__all__ = [
    "ImportStatus",
    "ImportResult",
    "SyncOrchestrator",
    "DEMO_MODE_NOTICE",
    "AUTH_REQUIRED_MESSAGE",
]

DEMO_MODE_NOTICE = "Đang chạy ở chế độ Demo (Offline)."
AUTH_REQUIRED_MESSAGE = "Cần đăng nhập quản trị để nhập dữ liệu (authentication required)."
TIMEOUT_NOTICE = "Kết nối quá hạn (Timeout). Đang hiển thị dữ liệu mẫu hoặc dữ liệu cũ."
READ_FAILED_NOTICE = "Không tải được dữ liệu từ máy chủ. Đang hiển thị dữ liệu mẫu hoặc dữ liệu cũ."


class ImportStatus(Enum):
    SUCCESS = "success"
    AUTH_REQUIRED = "auth_required"
    PARSE_FAILED = "parse_failed"
    WRITE_FAILED = "write_failed"


@dataclass(frozen=True)
class ImportResult:
    status: ImportStatus
    record_count: int = 0
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is ImportStatus.SUCCESS


def _error_type(e: Exception) -> str:
    if isinstance(e, PermissionDenied):
        return "PERMISSION_DENIED"
    if isinstance(e, StoreTimeout):
        return "TIMEOUT"
    if isinstance(e, NotConfigured):
        return "NOT_CONFIGURED"
    if isinstance(e, ParseError):
        return "PARSE_ERROR"
    return "STORE_ERROR"


class SyncOrchestrator:
    """Process-wide state machine over the authoritative record set.

    Args:
        store: snapshot store (``configured`` / ``read`` / ``write`` / ``cached``)
        authenticator: credential check returning a Role
        display: timestamp / date formats and the default status literal
        clock: current local time source
        error_log: optional JSON Lines error buffer; failures are appended
    """

    def __init__(
        self,
        store: SnapshotStore,
        authenticator: Authenticator,
        display: DisplayConfig | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self._store = store
        self._authenticator = authenticator
        self._display = display or DisplayConfig()
        self._clock = clock
        self._error_log = error_log
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def location(self) -> str:
        return getattr(self._store, "location", "snapshot")

    def _record_error(self, operation: str, source: str, e: Exception) -> None:
        if self._error_log is not None:
            self._error_log.append(ErrorRecord.create(operation, source, _error_type(e), str(e)))

    # ---- startup ----

    def _fallback(self, source: LoadSource) -> None:
        """Cached snapshot if one exists and the read failed, otherwise sample data."""
        if source is LoadSource.SAMPLE_FAILED:
            cached = self._store.cached()
            if cached is not None:
                self._adopt(cached, LoadSource.CACHE)
                return
        self._state.seed_sample(source)
        self._state.last_updated = None

    def _adopt(self, snapshot: Snapshot, source: LoadSource) -> None:
        self._state.records = snapshot.records
        self._state.last_updated = snapshot.last_updated
        self._state.load_source = source

    async def start(self) -> SessionState:
        """Load the initial record set. Runs once; later calls are no-ops."""
        state = self._state
        if state.sync_state is not SyncState.UNINITIALIZED:
            return state

        if not self._store.configured():
            logger.info("snapshot store not configured -> demo mode with sample data")
            state.seed_sample(LoadSource.SAMPLE_UNCONFIGURED)
            state.notice = DEMO_MODE_NOTICE
            state.sync_state = SyncState.READY
            return state

        state.sync_state = SyncState.LOADING
        state.last_error = None
        try:
            snapshot = await self._store.read()
        except StoreTimeout as e:
            logger.warning(f"startup load timed out: {e}")
            self._record_error("startup", self.location, e)
            self._fallback(LoadSource.SAMPLE_FAILED)
            state.notice = f"{TIMEOUT_NOTICE} ({e})"
        except PermissionDenied as e:
            # 唯一の「見える」エラー: 運用者の対応が必要
            logger.error(f"startup load rejected: {e}")
            self._record_error("startup", self.location, e)
            self._fallback(LoadSource.SAMPLE_FAILED)
            state.last_error = str(e)
        except StoreError as e:
            logger.warning(f"startup load failed: {e}")
            self._record_error("startup", self.location, e)
            self._fallback(LoadSource.SAMPLE_FAILED)
            state.notice = f"{READ_FAILED_NOTICE} ({e})"
        else:
            if snapshot is not None:
                self._adopt(snapshot, LoadSource.CLOUD)
                logger.info(
                    f"snapshot loaded records={len(snapshot.records)} last_updated={snapshot.last_updated}"
                )
            elif getattr(self._store, "last_read_status", None) is ReadStatus.FAILED:
                logger.info("snapshot read failed -> sample data")
                self._fallback(LoadSource.SAMPLE_FAILED)
                state.notice = READ_FAILED_NOTICE
            else:
                logger.info("no snapshot stored yet -> sample data")
                self._fallback(LoadSource.SAMPLE_ABSENT)

        state.sync_state = SyncState.READY
        return state

    # ---- authentication ----

    def authenticate(self, username: str, password: str) -> bool:
        state = self._state
        try:
            role = self._authenticator.authenticate(username, password)
        except AuthError as e:
            state.auth_error = str(e)
            logger.warning("login rejected")
            return False
        state.role = role
        state.auth_error = None
        logger.info(f"login ok role={role.value}")
        return role is Role.ADMIN

    def logout(self) -> None:
        self._state.role = Role.VIEWER
        self._state.auth_error = None

    # ---- import ----

    def timestamp_label(self) -> str:
        return self._clock().strftime(self._display.timestamp_format)

    def _fail_import(self, status: ImportStatus, source_name: str, e: Exception) -> ImportResult:
        logger.error(f"import failed file={source_name}: {e}")
        self._record_error("import", source_name, e)
        self._state.last_error = str(e)
        self._state.sync_state = SyncState.ERROR
        return ImportResult(status=status, message=str(e))

    async def import_roster(self, source: RosterSource, source_name: str = "<upload>") -> ImportResult:
        """Replace the roster with the contents of an uploaded spreadsheet (admin only)."""
        state = self._state
        if state.role is not Role.ADMIN:
            logger.warning(f"import rejected file={source_name}: authentication required")
            return ImportResult(status=ImportStatus.AUTH_REQUIRED, message=AUTH_REQUIRED_MESSAGE)

        state.sync_state = SyncState.LOADING
        state.last_error = None
        try:
            records = await ingest_roster(
                source,
                default_status=self._display.default_status,
                date_format=self._display.date_format,
            )
        except ParseError as e:
            return self._fail_import(ImportStatus.PARSE_FAILED, source_name, e)

        timestamp = self.timestamp_label()
        try:
            await self._store.write(records, timestamp)
        except StoreError as e:
            return self._fail_import(ImportStatus.WRITE_FAILED, source_name, e)

        # write 成功後にのみ差し替え (部分更新なし)
        state.records = tuple(records)
        state.last_updated = timestamp
        state.load_source = LoadSource.IMPORT
        state.notice = None
        state.sync_state = SyncState.READY
        logger.info(f"import ok file={source_name} records={len(records)} last_updated={timestamp}")
        return ImportResult(status=ImportStatus.SUCCESS, record_count=len(records))

    # ---- view controls ----

    def set_search_term(self, text: str) -> None:
        self._state.search_term = text or ""

    def set_sort(self, key: str | None, direction: SortDirection | str = SortDirection.ASC) -> None:
        """Set the single sort key; ``key=None`` clears sorting."""
        self._state.sort = None if key is None else SortSpec(key, direction)

    def dismiss_notice(self) -> None:
        self._state.notice = None
        self._state.last_error = None
        if self._state.sync_state is SyncState.ERROR:
            self._state.sync_state = SyncState.READY

    def view(self) -> DerivedView:
        return derive_view(self._state.records, self._state.search_term, self._state.sort)
