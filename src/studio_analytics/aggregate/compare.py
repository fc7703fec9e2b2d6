"""Month-on-month and year-on-year comparison of bucketed aggregates.

Growth policy: ``growth_rate = difference / previous * 100`` when the
previous value is non-zero, otherwise 0. A missing previous period and a
previous value of zero are deliberately not told apart; both report 0%
growth.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Union

from studio_analytics.aggregate.metrics import Row, safe_divide
from studio_analytics.models import to_number

Comparable = Union[float, int, Mapping[str, Any], None]


@dataclass(frozen=True)
class Comparison:
    difference: float
    growth_rate: float


def _value(item: Comparable, metric: str = "value") -> float:
    if isinstance(item, Mapping):
        return to_number(item.get(metric))
    return to_number(item)


def compare(current: Comparable, previous: Comparable, metric: str = "value") -> Comparison:
    """Compare two periods.

    Args:
        current: Current-period number, or aggregate mapping holding `metric`.
        previous: Previous-period number or aggregate mapping; None means
            "no previous data" and behaves like 0.
        metric: Key read from mapping arguments (default ``"value"``).

    Returns:
        `Comparison` with the signed difference and growth rate in percent.
    """
    cur = _value(current, metric)
    prev = _value(previous, metric)
    difference = cur - prev
    return Comparison(difference=difference, growth_rate=safe_divide(difference, prev) * 100.0)


def compare_at(
    series: Sequence[Mapping[str, Any]],
    metric: str,
    current_index: int,
    previous_index: int,
) -> Comparison:
    """Compare two buckets of an already-ordered series by explicit index.

    An index outside the series counts as missing data.
    """
    def pick(i: int) -> Comparable:
        return series[i] if -len(series) <= i < len(series) else None

    return compare(pick(current_index), pick(previous_index), metric)


def growth_series(series: Sequence[Mapping[str, Any]], metric: str) -> List[Row]:
    """Annotate each bucket with its change against the preceding bucket.

    The series must already be in display order (e.g. ascending months).
    The first bucket has no predecessor and is compared against 0.
    """
    out: List[Row] = []
    previous: Comparable = None
    for bucket in series:
        c = compare(bucket, previous, metric)
        out.append({**bucket, "difference": c.difference, "growth_rate": c.growth_rate})
        previous = bucket
    return out


def year_on_year(buckets: Mapping[str, Mapping[str, Any]], metric: str) -> List[Row]:
    """Compare the most recent year against the one before it.

    Args:
        buckets: Aggregates keyed by ``YYYY`` year key.
        metric: Metric to compare.

    Returns:
        An empty list when fewer than two years have data, otherwise one row
        with ``year``, ``current_year``, ``previous_year``, ``difference`` and
        ``growth_rate``.
    """
    years = sorted(buckets, reverse=True)
    if len(years) < 2:
        return []

    current, previous = buckets[years[0]], buckets[years[1]]
    c = compare(current, previous, metric)
    return [
        {
            "year": years[0],
            "current_year": _value(current, metric),
            "previous_year": _value(previous, metric),
            "difference": c.difference,
            "growth_rate": c.growth_rate,
        }
    ]


def index_by(rows: Sequence[Mapping[str, Any]], key: str) -> Dict[str, Mapping[str, Any]]:
    """Turn summary rows into a mapping keyed by one of their columns."""
    return {str(r[key]): r for r in rows if r.get(key) is not None}
