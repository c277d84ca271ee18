"""Ordering of snapshot rows for display.

CPA columns are ranked relative to each row's own target CPA rather than by raw
magnitude: campaigns carry different targets, so a $60 CPA against a $100 target
is healthier than a $30 CPA against a $20 target.
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Iterable, List, Mapping, TypeVar

from Paid_media.classification import variance_pct

Row = TypeVar("Row")

DIRECTIONS = ("asc", "desc")


def is_cpa_metric(key: str) -> bool:
    return "cpa" in key.lower()


def _field(row: object, key: str):
    if isinstance(row, Mapping):
        return row[key]
    return getattr(row, key)


def _target(row: object) -> float:
    if isinstance(row, Mapping):
        return float(row.get("tcpa", 0.0) or 0.0)
    return float(getattr(row, "tcpa", 0.0) or 0.0)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def _cpa_comparator(key: str, direction: str) -> Callable[[object, object], int]:
    descending = direction == "desc"

    def compare(a: object, b: object) -> int:
        a_value, b_value = float(_field(a, key)), float(_field(b, key))
        a_target, b_target = _target(a), _target(b)
        a_over = a_value > a_target
        b_over = b_value > b_target
        if a_over != b_over:
            # over-target rows lead a descending sort and trail an ascending one
            if descending:
                return -1 if a_over else 1
            return 1 if a_over else -1
        a_variance = variance_pct(a_value, a_target)
        b_variance = variance_pct(b_value, b_target)
        if descending:
            return _sign(b_variance - a_variance)
        return _sign(a_variance - b_variance)

    return compare


def _plain_comparator(key: str, direction: str) -> Callable[[object, object], int]:
    def compare(a: object, b: object) -> int:
        a_value, b_value = _field(a, key), _field(b, key)
        if a_value == b_value:
            return 0
        comparison = 1 if a_value > b_value else -1
        return comparison if direction == "asc" else -comparison

    return compare


def sort_by_metric(rows: Iterable[Row], key: str, direction: str = "desc") -> List[Row]:
    """Return *rows* ordered by *key*; the input is left untouched.

    Keys containing ``cpa`` (any case) use target-relative ranking, everything
    else a plain comparison. Ties keep their input order.
    """

    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
    comparator = _cpa_comparator(key, direction) if is_cpa_metric(key) else _plain_comparator(key, direction)
    return sorted(rows, key=cmp_to_key(comparator))
