from __future__ import annotations

import unicodedata
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

"""Record / Snapshot domain models for the roster.

A Record is one personnel entry. Its identity within a session is its position
in the owning sequence; there is no primary key across snapshots, a re-import
replaces the whole sequence.

The persisted document uses the short key names of the shared store
(``stt``, ``fullName``, ``dob`` ...), so the mapping lives here rather than in
the store layer.
"""

__all__ = [
    "DEFAULT_STATUS",
    "UNKNOWN_TIMESTAMP",
    "LOGGED_IN_MARKERS",
    "LOGGED_OUT_MARKERS",
    "Record",
    "Snapshot",
    "StatusClass",
    "classify_status",
    "normalize_text",
    "SAMPLE_RECORDS",
]

DEFAULT_STATUS = "Hoạt động"  # "active"
UNKNOWN_TIMESTAMP = "Không rõ"  # "unknown"

LOGGED_IN_MARKERS = ("đã đăng nhập",)
LOGGED_OUT_MARKERS = ("chưa đăng nhập",)

# Record attribute -> persisted document key
_DOCUMENT_KEYS = {
    "sequence_number": "stt",
    "full_name": "fullName",
    "unit": "unit",
    "parent_unit": "parentUnit",
    "date_of_birth": "dob",
    "phone": "phone",
    "status": "status",
}


def normalize_text(value: Any) -> str:
    """Locale-normalised, case-folded string form used for matching."""
    return unicodedata.normalize("NFC", str(value)).casefold()


class StatusClass(Enum):
    LOGGED_IN = "logged_in"
    LOGGED_OUT = "logged_out"
    OTHER = "other"


def classify_status(status: Any) -> StatusClass:
    """Classify a free-text status label by case-insensitive substring.

    Logged-out markers win over logged-in markers when both appear. Any other
    label (including the default "Hoạt động") is OTHER.
    """
    text = normalize_text(status)
    if any(marker in text for marker in LOGGED_OUT_MARKERS):
        return StatusClass.LOGGED_OUT
    if any(marker in text for marker in LOGGED_IN_MARKERS):
        return StatusClass.LOGGED_IN
    return StatusClass.OTHER


@dataclass(frozen=True)
class Record:
    """One roster entry (positional columns 0-6 of the uploaded sheet)."""
    sequence_number: int | str  # display-only ordinal, not unique
    full_name: str
    unit: str = ""
    parent_unit: str = ""
    date_of_birth: str = ""  # free text, not validated
    phone: str = ""
    status: str = DEFAULT_STATUS

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name) for name in self.field_names())

    def to_document(self) -> dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in _DOCUMENT_KEYS.items()}

    @classmethod
    def from_document(cls, doc: dict[str, Any], position: int = 0) -> Record:
        """Build a Record from a stored document entry.

        Missing keys fall back the same way ingestion does; ``position`` is the
        0-based index used when ``stt`` is absent.
        """
        def _text(key: str) -> str:
            val = doc.get(key)
            return "" if val is None else str(val)

        seq = doc.get("stt")
        if seq is None or seq == "":
            seq = position + 1
        elif isinstance(seq, float) and seq.is_integer():
            seq = int(seq)
        elif not isinstance(seq, (int, str)) or isinstance(seq, bool):
            seq = str(seq)
        return cls(
            sequence_number=seq,
            full_name=_text("fullName"),
            unit=_text("unit"),
            parent_unit=_text("parentUnit"),
            date_of_birth=_text("dob"),
            phone=_text("phone"),
            status=_text("status") or DEFAULT_STATUS,
        )


@dataclass(frozen=True)
class Snapshot:
    """The single persisted (records, timestamp) document."""
    records: tuple[Record, ...]
    last_updated: str

    def to_document(self) -> dict[str, Any]:
        return {
            "data": [r.to_document() for r in self.records],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Snapshot:
        raw = doc.get("data")
        if not isinstance(raw, list):
            raw = []
        records = tuple(
            Record.from_document(item, position=i)
            for i, item in enumerate(raw)
            if isinstance(item, dict)
        )
        return cls(records=records, last_updated=doc.get("lastUpdated") or UNKNOWN_TIMESTAMP)


# 組み込みサンプル (offline/demo mode)
SAMPLE_RECORDS: tuple[Record, ...] = (
    Record(1, "Nguyễn Văn A (Dữ liệu mẫu)", "Phòng Kỹ thuật", "Khối Sản xuất",
           "15/05/1990", "0901234567", "Đã đăng nhập"),
    Record(2, "Trần Thị B (Dữ liệu mẫu)", "Phòng Nhân sự", "Khối Hành chính",
           "22/08/1992", "0912345678", "Đã đăng nhập"),
    Record(3, "Lê Văn C (Dữ liệu mẫu)", "Phòng Kinh doanh", "Khối Thương mại",
           "10/12/1988", "0987654321", "Chưa đăng nhập"),
)
