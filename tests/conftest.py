# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from roster_sync.logging.init import reset_logging
from roster_sync.models.record import Record, Snapshot
from roster_sync.store.snapshot_store import ReadStatus

HEADER = ["STT", "Họ và tên", "Đơn vị", "Đơn vị cấp trên", "Ngày sinh", "Số điện thoại", "Trạng thái"]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # 実環境の接続情報がテストに混入しないように
        for var in ("DATABASE_URL", "PGDSN", "ROSTER_ADMIN_USERNAME", "ROSTER_ADMIN_PASSWORD", "ROSTER_STORE_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        yield p


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def sample_config_yaml() -> str:
    return """store:
  dsn: YOUR_DATABASE_URL
  collection: app_data
  document_id: employee_records
  timeout_seconds: 8
auth:
  username: admin
  password: s3cret-Pass
display:
  timestamp_format: "%H:%M:%S - %d/%m/%Y"
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "roster.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def make_workbook(temp_workdir: Path):
    """Write an .xlsx whose first sheet holds ``rows`` (no pandas header row)."""
    def _make(name: str, rows: Sequence[Sequence[Any]], extra_sheets: dict[str, list[list[Any]]] | None = None) -> Path:
        p = temp_workdir / "data" / name
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            pd.DataFrame(list(rows)).to_excel(writer, sheet_name="Roster", header=False, index=False)
            for sheet, extra in (extra_sheets or {}).items():
                pd.DataFrame(extra).to_excel(writer, sheet_name=sheet, header=False, index=False)
        return p
    return _make


def roster_rows(count: int, empty_name_at: set[int] | None = None) -> list[list[Any]]:
    """Header + ``count`` data rows; 1-based data positions in ``empty_name_at`` get no name."""
    rows: list[list[Any]] = [HEADER]
    for i in range(1, count + 1):
        name = "" if empty_name_at and i in empty_name_at else f"Nhân viên {i:02d}"
        status = "Đã đăng nhập" if i % 2 else "Chưa đăng nhập"
        rows.append([i, name, f"Phòng {i % 3}", "Khối A", "01/01/1990", f"09000000{i:02d}", status])
    return rows


class FakeStore:
    """In-memory stand-in for PostgresSnapshotStore."""

    location = "app_data/employee_records"

    def __init__(
        self,
        *,
        configured: bool = True,
        snapshot: Snapshot | None = None,
        read_error: Exception | None = None,
        write_error: Exception | None = None,
        read_status: ReadStatus | None = None,
        cached: Snapshot | None = None,
    ) -> None:
        self._configured = configured
        self._snapshot = snapshot
        self._read_error = read_error
        self._write_error = write_error
        self._cached = cached
        self.last_read_status = read_status
        self.read_calls = 0
        self.writes: list[tuple[list[Record], str]] = []

    def configured(self) -> bool:
        return self._configured

    async def read(self) -> Snapshot | None:
        self.read_calls += 1
        if self._read_error is not None:
            raise self._read_error
        if self.last_read_status is None:
            self.last_read_status = ReadStatus.OK if self._snapshot else ReadStatus.ABSENT
        return self._snapshot

    async def write(self, records, timestamp: str) -> None:
        if self._write_error is not None:
            raise self._write_error
        self.writes.append((list(records), timestamp))

    def cached(self) -> Snapshot | None:
        return self._cached


@pytest.fixture()
def fake_store():
    return FakeStore


@pytest.fixture()
def rows_factory():
    return roster_rows
