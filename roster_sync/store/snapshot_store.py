from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from enum import Enum
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import Json

from roster_sync.config.loader import StoreConfig
from roster_sync.models.record import Record, Snapshot

from .cache import SnapshotCache
from .errors import NotConfigured, PermissionDenied, StoreError, StoreTimeout

"""Remote snapshot store backed by PostgreSQL.

Exactly one document lives at (collection, document_id) in ``roster_documents``
as JSONB ``{"data": [...], "lastUpdated": "..."}``.

- write: wholesale overwrite, unconditional last-writer-wins (no version check)
- read: bounded by ``timeout_seconds``; timeout and permission failures are
  raised, every other failure is logged and reported as "no data" so that an
  outage degrades to offline mode. ``last_read_status`` tells the two apart.

psycopg2 is synchronous, so each operation runs in ``asyncio.to_thread`` with
its own short-lived connection.
"""

__all__ = [
    "ReadStatus",
    "SnapshotStore",
    "PostgresSnapshotStore",
    "is_placeholder_dsn",
    "TABLE_NAME",
]

logger = logging.getLogger(__name__)

TABLE_NAME = "roster_documents"

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    collection TEXT NOT NULL,
    document_id TEXT NOT NULL,
    document JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (collection, document_id)
)
"""

UPSERT_SQL = (
    f"INSERT INTO {TABLE_NAME} (collection, document_id, document, updated_at) "
    "VALUES (%s, %s, %s, now()) "
    "ON CONFLICT (collection, document_id) "
    "DO UPDATE SET document = EXCLUDED.document, updated_at = now()"
)

SELECT_SQL = f"SELECT document FROM {TABLE_NAME} WHERE collection = %s AND document_id = %s"

# SQLSTATE: insufficient_privilege / invalid_authorization_specification / invalid_password
PERMISSION_SQLSTATES = {"42501", "28000", "28P01"}
UNDEFINED_TABLE_SQLSTATE = "42P01"

PLACEHOLDER_PREFIXES = ("YOUR_", "<")
PLACEHOLDER_VALUES = {"", "changeme", "change-me"}

CONNECT_TIMEOUT_SECONDS = 5


def is_placeholder_dsn(dsn: str | None) -> bool:
    if dsn is None:
        return True
    value = dsn.strip()
    if value.lower() in PLACEHOLDER_VALUES:
        return True
    return value.upper().startswith(PLACEHOLDER_PREFIXES)


class ReadStatus(Enum):
    """Outcome of the last ``read()``."""
    OK = "ok"
    ABSENT = "absent"
    NOT_CONFIGURED = "not_configured"
    TIMEOUT = "timeout"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"


class SnapshotStore(Protocol):
    """Narrow read/write/timeout contract the orchestrator depends on."""

    last_read_status: ReadStatus | None

    def configured(self) -> bool: ...

    async def read(self) -> Snapshot | None: ...

    async def write(self, records: Sequence[Record], timestamp: str) -> None: ...

    def cached(self) -> Snapshot | None: ...


def _plain_copy(records: Sequence[Record], timestamp: str) -> dict[str, Any]:
    """Deep copy through a JSON round trip so only plain data reaches the driver."""
    doc = Snapshot(records=tuple(records), last_updated=timestamp).to_document()
    return json.loads(json.dumps(doc, ensure_ascii=False, default=str))


def _is_permission_error(e: psycopg2.Error) -> bool:
    if getattr(e, "pgcode", None) in PERMISSION_SQLSTATES:
        return True
    return "permission denied" in str(e).lower()


def _describe(e: Exception) -> str:
    msg = str(e).strip()
    return msg.splitlines()[0] if msg else type(e).__name__


class PostgresSnapshotStore:
    """Single-slot snapshot persistence in a PostgreSQL JSONB row.

    Args:
        config: StoreConfig (dsn, collection/document identity, timeout, cache)
        connect: connection factory, ``psycopg2.connect`` by default
    """

    def __init__(
        self,
        config: StoreConfig,
        connect: Callable[..., Any] | None = None,
    ) -> None:
        self.config = config
        self._connect = connect or psycopg2.connect
        self._cache = SnapshotCache(config.cache_path) if config.cache_path else None
        self.last_read_status: ReadStatus | None = None

    @property
    def location(self) -> str:
        return f"{self.config.collection}/{self.config.document_id}"

    def configured(self) -> bool:
        return not is_placeholder_dsn(self.config.dsn)

    def cached(self) -> Snapshot | None:
        if self._cache is None:
            return None
        return self._cache.load()

    def _connect_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {"connect_timeout": CONNECT_TIMEOUT_SECONDS}
        timeout = self.config.timeout_seconds
        if timeout is not None:
            # サーバ側でも打ち切る: wait_for はワーカースレッドを止められない
            kwargs["options"] = f"-c statement_timeout={max(1, int(timeout * 1000))}"
        return kwargs

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        conn = self._connect(self.config.dsn, **self._connect_kwargs())
        try:
            cur = conn.cursor()
            try:
                yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cur.close()
        finally:
            conn.close()

    # ---- write ----

    def _write_document(self, payload: dict[str, Any]) -> None:
        try:
            with self._cursor() as cur:
                cur.execute(CREATE_TABLE_SQL)
                cur.execute(
                    UPSERT_SQL,
                    (self.config.collection, self.config.document_id, Json(payload)),
                )
        except psycopg2.Error as e:
            if _is_permission_error(e):
                raise PermissionDenied(
                    f"permission denied writing {self.location}: {_describe(e)}"
                ) from e
            raise StoreError(f"write failed for {self.location}: {_describe(e)}") from e

    async def write(self, records: Sequence[Record], timestamp: str) -> None:
        """Overwrite the snapshot document.

        Raises:
            NotConfigured: no usable DSN
            PermissionDenied: rejected by database privileges
            StoreError: any other failure
        """
        if not self.configured():
            raise NotConfigured("snapshot store is not configured (set DATABASE_URL)")
        payload = _plain_copy(records, timestamp)
        try:
            await asyncio.to_thread(self._write_document, payload)
        except StoreError:
            raise
        except Exception as e:
            raise StoreError(f"write failed for {self.location}: {_describe(e)}") from e
        logger.info(f"snapshot written location={self.location} records={len(payload['data'])}")
        if self._cache is not None:
            self._cache.save(Snapshot.from_document(payload))

    # ---- read ----

    def _fetch_document(self) -> Any:
        try:
            with self._cursor() as cur:
                cur.execute(SELECT_SQL, (self.config.collection, self.config.document_id))
                row = cur.fetchone()
        except psycopg2.Error as e:
            if getattr(e, "pgcode", None) == UNDEFINED_TABLE_SQLSTATE:
                # テーブル未作成 = まだ一度も書き込まれていない
                return None
            if _is_permission_error(e):
                raise PermissionDenied(
                    f"permission denied reading {self.location}: {_describe(e)}"
                ) from e
            raise StoreError(f"read failed for {self.location}: {_describe(e)}") from e
        if row is None:
            return None
        doc = row[0]
        if isinstance(doc, (str, bytes)):
            doc = json.loads(doc)
        return doc

    async def read(self) -> Snapshot | None:
        """Return the stored snapshot, or None when unconfigured / absent / failed.

        Raises:
            StoreTimeout: the read exceeded ``timeout_seconds``
            PermissionDenied: rejected by database privileges
        """
        if not self.configured():
            self.last_read_status = ReadStatus.NOT_CONFIGURED
            return None

        timeout = self.config.timeout_seconds
        try:
            fetch = asyncio.to_thread(self._fetch_document)
            if timeout is None:
                doc = await fetch
            else:
                doc = await asyncio.wait_for(fetch, timeout=timeout)
        except TimeoutError as e:
            self.last_read_status = ReadStatus.TIMEOUT
            raise StoreTimeout(f"read timed out after {timeout:g}s for {self.location}") from e
        except PermissionDenied:
            self.last_read_status = ReadStatus.PERMISSION_DENIED
            raise
        except Exception as e:
            # 停止させずオフライン扱いに落とす
            logger.warning(f"snapshot read failed, treating as no data: {_describe(e)}")
            self.last_read_status = ReadStatus.FAILED
            return None

        if doc is None:
            self.last_read_status = ReadStatus.ABSENT
            return None
        if not isinstance(doc, dict):
            logger.warning(f"snapshot document malformed location={self.location}")
            self.last_read_status = ReadStatus.FAILED
            return None

        snapshot = Snapshot.from_document(doc)
        self.last_read_status = ReadStatus.OK
        if self._cache is not None:
            self._cache.save(snapshot)
        return snapshot
