"""Ranking of grouped aggregates for top/bottom lists."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, TypeVar

from studio_analytics.models import to_number

T = TypeVar("T")


def _metric(row: Mapping[str, Any], metric_key: str) -> float:
    return to_number(row.get(metric_key))


def rank(
    aggregates: Sequence[Mapping[str, Any]],
    metric_key: str,
    limit: Optional[int] = None,
) -> List[Mapping[str, Any]]:
    """Sort aggregates by `metric_key`, highest first.

    Missing values rank as 0. The sort is stable, so ties keep their input
    order and ranking an already-ranked list changes nothing.

    Args:
        aggregates: Summary rows.
        metric_key: Column to sort by.
        limit: Keep only the first `limit` rows; None keeps all.
    """
    ranked = sorted(aggregates, key=lambda r: _metric(r, metric_key), reverse=True)
    return ranked if limit is None else ranked[: max(0, limit)]


def rank_bottom(
    aggregates: Sequence[Mapping[str, Any]],
    metric_key: str,
    limit: Optional[int] = None,
) -> List[Mapping[str, Any]]:
    """Like `rank`, lowest first (bottom performers)."""
    ranked = sorted(aggregates, key=lambda r: _metric(r, metric_key))
    return ranked if limit is None else ranked[: max(0, limit)]


def top_record(records: Iterable[T], value_fn: Callable[[T], Any]) -> Optional[T]:
    """Return the first record holding the largest value, or None if empty."""
    best: Optional[T] = None
    best_value = 0.0
    for record in records:
        value = to_number(value_fn(record))
        if best is None or value > best_value:
            best, best_value = record, value
    return best
