from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any

from roster_sync.models.record import Record, StatusClass, classify_status, normalize_text

"""View engine: filtered / sorted / aggregated projections of the record set.

Pure functions. Inputs are never mutated; each call returns a new sequence.
"""

__all__ = [
    "SortDirection",
    "SortSpec",
    "SORT_KEYS",
    "RosterStats",
    "DerivedView",
    "matches",
    "filter_records",
    "sort_records",
    "toggle_sort",
    "compute_aggregates",
    "derive_view",
]

SORT_KEYS: tuple[str, ...] = Record.field_names()


class SortDirection(Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    key: str
    direction: SortDirection = SortDirection.ASC

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise ValueError(f"unknown sort key: {self.key!r} (expected one of {', '.join(SORT_KEYS)})")
        if not isinstance(self.direction, SortDirection):
            # "asc" / "desc" 文字列も受け付ける
            object.__setattr__(self, "direction", SortDirection(self.direction))


@dataclass(frozen=True)
class RosterStats:
    total: int
    logged_in: int
    logged_out: int
    units: int


@dataclass(frozen=True)
class DerivedView:
    records: tuple[Record, ...]
    stats: RosterStats


def matches(record: Record, term: str) -> bool:
    """True if any field's normalised text contains ``term`` (case-insensitive)."""
    if not term:
        return True
    needle = normalize_text(term)
    return any(needle in normalize_text(val) for val in record.values())


def filter_records(records: Iterable[Record], term: str) -> tuple[Record, ...]:
    return tuple(r for r in records if matches(r, term))


def _is_number(val: Any) -> bool:
    return isinstance(val, Real) and not isinstance(val, bool)


def sort_records(records: Iterable[Record], sort: SortSpec | None) -> tuple[Record, ...]:
    """Sort by one field.

    The mode is chosen once for the whole column: numeric when every value is a
    number, otherwise every value is compared as text. ``sort=None`` keeps the
    incoming order.
    """
    items = tuple(records)
    if sort is None:
        return items
    values = [getattr(r, sort.key) for r in items]
    if all(_is_number(v) for v in values):
        keyed = values
    else:
        keyed = [str(v) for v in values]
    order = sorted(range(len(items)), key=keyed.__getitem__, reverse=sort.direction is SortDirection.DESC)
    return tuple(items[i] for i in order)


def toggle_sort(current: SortSpec | None, key: str) -> SortSpec:
    """Column-header click: same key ascending -> descending, otherwise ascending."""
    if current is not None and current.key == key and current.direction is SortDirection.ASC:
        return SortSpec(key, SortDirection.DESC)
    return SortSpec(key, SortDirection.ASC)


def compute_aggregates(records: Sequence[Record]) -> RosterStats:
    classes = [classify_status(r.status) for r in records]
    return RosterStats(
        total=len(records),
        logged_in=sum(1 for c in classes if c is StatusClass.LOGGED_IN),
        logged_out=sum(1 for c in classes if c is StatusClass.LOGGED_OUT),
        units=len({r.unit for r in records}),
    )


def derive_view(records: Sequence[Record], search_term: str = "", sort: SortSpec | None = None) -> DerivedView:
    """Filter, then sort; aggregates are computed over the filtered set."""
    filtered = filter_records(records, search_term)
    return DerivedView(records=sort_records(filtered, sort), stats=compute_aggregates(filtered))
