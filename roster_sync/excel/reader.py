from __future__ import annotations

import asyncio
import io
from datetime import date, datetime
from os import PathLike
from typing import IO, Any, Union

import pandas as pd

from roster_sync.models.record import DEFAULT_STATUS, Record

"""Spreadsheet ingestor.

- 1枚目のシートのみ読む (other sheets are ignored)
- Row 0 is the header and is discarded without looking at it
- Columns 0-6 map positionally to
  stt, full name, unit, parent unit, date of birth, phone, status
- Rows whose full name is empty are dropped silently

Decoding or I/O failures surface as a single ParseError; no partial result.
"""

__all__ = [
    "ParseError",
    "RosterSource",
    "COLUMN_COUNT",
    "XLS_SIGNATURE",
    "read_roster",
    "ingest_roster",
]

RosterSource = Union[str, PathLike, bytes, bytearray, IO[bytes]]

COLUMN_COUNT = 7

# OLE2 compound document header of legacy .xls (BIFF) workbooks
XLS_SIGNATURE = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class ParseError(Exception):
    """Raised when an uploaded file cannot be read or decoded as a spreadsheet."""


def _is_missing(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, str):
        return val.strip() == ""
    try:
        return bool(pd.isna(val))
    except (TypeError, ValueError):
        return False


def _cell_text(val: Any, date_format: str) -> str:
    """Render a non-missing cell as display text."""
    if isinstance(val, str):
        return val.strip()
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, (datetime, date)):
        return val.strftime(date_format)
    if isinstance(val, float) and val.is_integer():
        # 電話番号などが 901234567.0 になるのを防ぐ
        return str(int(val))
    return str(val)


def _sequence_value(val: Any, position: int, date_format: str) -> int | str:
    if _is_missing(val):
        return position
    if isinstance(val, bool):
        return str(val)
    if isinstance(val, int):
        return val
    if isinstance(val, float) and val.is_integer():
        return int(val)
    return _cell_text(val, date_format)


def _open_source(source: RosterSource) -> Any:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    return source


def _engine_for(source: RosterSource) -> str | None:
    """xlrd for legacy .xls input; None lets pandas pick (openpyxl for .xlsx)."""
    if isinstance(source, (bytes, bytearray)):
        return "xlrd" if bytes(source[:8]) == XLS_SIGNATURE else None
    if isinstance(source, (str, PathLike)):
        return "xlrd" if str(source).lower().endswith(".xls") else None
    return None


def _row_to_record(
    row: list[Any], position: int, default_status: str, date_format: str
) -> Record:
    cells = list(row[:COLUMN_COUNT]) + [None] * max(0, COLUMN_COUNT - len(row))

    def text(i: int) -> str:
        return "" if _is_missing(cells[i]) else _cell_text(cells[i], date_format)

    return Record(
        sequence_number=_sequence_value(cells[0], position, date_format),
        full_name=text(1),
        unit=text(2),
        parent_unit=text(3),
        date_of_birth=text(4),
        phone=text(5),
        status=text(6) or default_status,
    )


def read_roster(
    source: RosterSource,
    *,
    default_status: str = DEFAULT_STATUS,
    date_format: str = "%d/%m/%Y",
) -> list[Record]:
    """Parse the first sheet of a workbook into Records.

    Parameters
    ----------
    source: path, raw bytes, or a binary file object
    default_status: status used when column 6 is empty
    date_format: strftime format for cells Excel stores as dates

    Raises
    ------
    ParseError: unreadable input or not a spreadsheet
    """
    try:
        with pd.ExcelFile(_open_source(source), engine=_engine_for(source)) as xls:
            if not xls.sheet_names:
                return []
            # dtype=object keeps native cell values; keep_default_na=False keeps
            # literal strings such as "NA" as text
            df = xls.parse(xls.sheet_names[0], header=None, dtype=object, keep_default_na=False)
    except Exception as e:
        raise ParseError(f"cannot read spreadsheet: {e}") from e

    records: list[Record] = []
    for position, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None), start=1):
        record = _row_to_record(list(raw), position, default_status, date_format)
        if record.full_name == "":
            continue
        records.append(record)
    return records


async def ingest_roster(
    source: RosterSource,
    *,
    default_status: str = DEFAULT_STATUS,
    date_format: str = "%d/%m/%Y",
) -> list[Record]:
    """Decode off the event loop; same contract as read_roster."""
    return await asyncio.to_thread(
        read_roster, source, default_status=default_status, date_format=date_format
    )
