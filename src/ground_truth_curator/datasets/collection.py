"""Pure transformations over an ordered record collection.

Every function returns a new list and leaves its input untouched. Records are
located by internal identity only, never by position.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import cmp_to_key
from typing import Callable

from ground_truth_curator.records.models import Record


class InsertPosition(str, Enum):
    """Where a new document goes relative to a target row."""

    BEFORE = "before"
    AFTER = "after"


class ApprovalFilter(str, Enum):
    """Approval predicate applied to the review view."""

    ALL = "all"
    APPROVED = "approved"
    PENDING = "pending"

    def matches(self, record: Record) -> bool:
        if self == ApprovalFilter.APPROVED:
            return record.approved
        if self == ApprovalFilter.PENDING:
            return not record.approved
        return True


class SortDirection(str, Enum):
    """Three-state sort toggle on the business identifier column."""

    NONE = "none"
    ASC = "asc"
    DESC = "desc"

    def next(self) -> "SortDirection":
        """none -> asc -> desc -> none."""
        return {
            SortDirection.NONE: SortDirection.ASC,
            SortDirection.ASC: SortDirection.DESC,
            SortDirection.DESC: SortDirection.NONE,
        }[self]


@dataclass(frozen=True)
class DatasetStats:
    """Progress counters shown above the review table."""

    total: int
    approved: int
    pending: int
    approval_rate: float


# =============================================================================
# Mutations
# =============================================================================


def find_index(records: list[Record], identity: str) -> int | None:
    """Position of the record with ``identity``, or None."""
    for i, record in enumerate(records):
        if record.identity == identity:
            return i
    return None


def append_record(records: list[Record], record: Record) -> list[Record]:
    return [*records, record]


def insert_record(
    records: list[Record],
    record: Record,
    position: InsertPosition | str = InsertPosition.AFTER,
    target_index: int | None = None,
) -> list[Record]:
    """Insert ``record`` before or after the row at ``target_index``.

    Out-of-range targets are clamped. Without a target the record goes after
    the last row.
    """
    if target_index is None:
        return append_record(records, record)

    index = target_index if InsertPosition(position) == InsertPosition.BEFORE else target_index + 1
    index = max(0, min(index, len(records)))
    return [*records[:index], record, *records[index:]]


def replace_record(
    records: list[Record], identity: str, replacement: Record
) -> tuple[list[Record], bool]:
    """Swap the record with ``identity`` for ``replacement`` in place.

    Returns:
        (new collection, whether a record was replaced)
    """
    index = find_index(records, identity)
    if index is None:
        return list(records), False
    updated = list(records)
    updated[index] = replacement
    return updated, True


def remove_record(records: list[Record], identity: str) -> tuple[list[Record], bool]:
    """Drop the record with ``identity``.

    Returns:
        (new collection, whether a record was removed)
    """
    remaining = [r for r in records if r.identity != identity]
    return remaining, len(remaining) != len(records)


def map_record(
    records: list[Record], identity: str, change: Callable[[Record], Record]
) -> tuple[list[Record], bool]:
    """Apply ``change`` to the record with ``identity``."""
    index = find_index(records, identity)
    if index is None:
        return list(records), False
    return replace_record(records, identity, change(records[index]))


# =============================================================================
# Derived views
# =============================================================================


def filter_records(
    records: list[Record],
    term: str = "",
    approval: ApprovalFilter | str = ApprovalFilter.ALL,
) -> list[Record]:
    """Records matching a case-insensitive search term AND an approval filter."""
    approval = ApprovalFilter(approval)
    needle = (term or "").strip().lower()

    result = []
    for record in records:
        if needle and not any(needle in value.lower() for value in record.search_values()):
            continue
        if approval.matches(record):
            result.append(record)
    return result


_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_CHUNKS = re.compile(r"(\d+)")


def leading_number(value: str) -> float | None:
    """Numeric value of the leading number in ``value`` (like ``parseFloat``)."""
    match = _NUMERIC_PREFIX.match(value or "")
    return float(match.group()) if match else None


def _natural_key(value: str) -> list[tuple[int, int | str]]:
    # Digit runs compare as numbers and sort before text at the same position
    return [
        (0, int(chunk)) if chunk.isdigit() else (1, chunk.casefold())
        for chunk in _CHUNKS.split(value or "")
        if chunk
    ]


def compare_ids(a: str, b: str) -> int:
    """Numeric comparison when both ids start with a number, else natural order."""
    num_a, num_b = leading_number(a), leading_number(b)
    if num_a is not None and num_b is not None:
        return (num_a > num_b) - (num_a < num_b)
    key_a, key_b = _natural_key(a), _natural_key(b)
    return (key_a > key_b) - (key_a < key_b)


def sort_records(
    records: list[Record], direction: SortDirection | str = SortDirection.NONE
) -> list[Record]:
    """Sort by business identifier. ``none`` keeps collection order."""
    direction = SortDirection(direction)
    if direction == SortDirection.NONE:
        return list(records)
    return sorted(
        records,
        key=cmp_to_key(lambda x, y: compare_ids(x.business_id, y.business_id)),
        reverse=direction == SortDirection.DESC,
    )


def collection_stats(records: list[Record]) -> DatasetStats:
    """Totals and approval rate (percent, one decimal)."""
    total = len(records)
    approved = sum(1 for r in records if r.approved)
    rate = round(approved / total * 100, 1) if total else 0.0
    return DatasetStats(
        total=total, approved=approved, pending=total - approved, approval_rate=rate
    )
