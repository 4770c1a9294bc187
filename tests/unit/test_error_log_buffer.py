from __future__ import annotations

import json
from pathlib import Path

from roster_sync.logging.error_log import ErrorLogBuffer
from roster_sync.models.error_record import ErrorRecord


def test_error_record_json_line_schema():
    rec = ErrorRecord.create("import", "roster.xlsx", "PARSE_ERROR", "cannot read spreadsheet")
    data = json.loads(rec.to_json_line())
    assert set(data) == {"timestamp", "operation", "source", "error_type", "message"}
    assert data["timestamp"].endswith("Z")
    assert data["operation"] == "import"


def test_error_record_keeps_unicode():
    rec = ErrorRecord.create("startup", "app_data/employee_records", "TIMEOUT", "Kết nối quá hạn")
    assert "Kết nối quá hạn" in rec.to_json_line()


def test_flush_writes_json_lines(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(ErrorRecord.create("import", "a.xlsx", "PARSE_ERROR", "x"))
    buf.append(ErrorRecord.create("import", "b.xlsx", "STORE_ERROR", "y"))
    path = buf.flush()
    assert path is not None and path.parent == tmp_path / "logs"
    assert path.name.startswith("errors-")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["source"] for line in lines] == ["a.xlsx", "b.xlsx"]
    assert len(buf) == 0


def test_len_counts_pending_records(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert len(buf) == 0
    buf.append(ErrorRecord.create("startup", "app_data/employee_records", "TIMEOUT", "x"))
    buf.append(ErrorRecord.create("import", "a.xlsx", "PARSE_ERROR", "y"))
    assert len(buf) == 2
    buf.flush()
    assert len(buf) == 0
    buf.append(ErrorRecord.create("import", "b.xlsx", "STORE_ERROR", "z"))
    assert len(buf) == 1


def test_flush_empty_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()
