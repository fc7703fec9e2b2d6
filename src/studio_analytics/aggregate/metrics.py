"""Declarative metric aggregation.

A metric spec is a sequence of metric definitions. Aggregation runs in two
passes:

1. accumulators (`Count`, `Sum`, `Distinct`, `Mean`) fold every record of a
   group into raw totals;
2. derived metrics (`Ratio`, `Derived`) are computed from those totals.

Rates are never built up incrementally per record, and nothing is rounded
here; rounding belongs to the presentation boundary. Every ratio with a zero
denominator is 0, and an empty group yields the same keys as a full one,
all zero-valued.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from studio_analytics.aggregate.grouping import KeyFn, group_by
from studio_analytics.models import to_number

Predicate = Callable[[Any], bool]
ValueFn = Union[str, Callable[[Any], Any]]
Row = Dict[str, Any]


def safe_divide(numerator: float, denominator: float) -> float:
    """Return ``numerator / denominator``, or 0 when the denominator is 0.

    Non-finite inputs or results also collapse to 0, so no NaN or infinity
    ever leaves the aggregation layer.
    """
    if not denominator or not math.isfinite(denominator) or not math.isfinite(numerator):
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def rate(numerator: float, denominator: float) -> float:
    """Percentage ``numerator / denominator * 100`` with the zero rule."""
    return safe_divide(numerator, denominator) * 100.0


def read_value(record: Any, attr: str) -> Any:
    """Read `attr` from a record model or a plain mapping row."""
    if isinstance(record, Mapping):
        return record.get(attr)
    return getattr(record, attr, None)


def _resolve(value: ValueFn) -> Callable[[Any], Any]:
    if isinstance(value, str):
        return lambda r: read_value(r, value)
    return value


def _matches(where: Optional[Predicate], record: Any) -> bool:
    return where is None or bool(where(record))


# ---------------------------------------------------------
# First pass: accumulators
# ---------------------------------------------------------

@dataclass(frozen=True)
class Count:
    """Number of records, optionally only those matching `where`."""
    name: str
    where: Optional[Predicate] = None

    def start(self) -> int:
        return 0

    def add(self, acc: int, record: Any) -> int:
        return acc + 1 if _matches(self.where, record) else acc

    def finish(self, acc: int) -> int:
        return acc


@dataclass(frozen=True)
class Sum:
    """Sum of a numeric value; missing or non-numeric values count as 0."""
    name: str
    value: ValueFn
    where: Optional[Predicate] = None

    def start(self) -> float:
        return 0.0

    def add(self, acc: float, record: Any) -> float:
        if not _matches(self.where, record):
            return acc
        return acc + to_number(_resolve(self.value)(record))

    def finish(self, acc: float) -> float:
        return acc


@dataclass(frozen=True)
class Distinct:
    """Number of distinct non-empty values (e.g. unique members)."""
    name: str
    value: ValueFn

    def start(self) -> set:
        return set()

    def add(self, acc: set, record: Any) -> set:
        v = _resolve(self.value)(record)
        if v is not None and v != "":
            acc.add(v)
        return acc

    def finish(self, acc: set) -> int:
        return len(acc)


@dataclass(frozen=True)
class Mean:
    """Mean of a per-record value over the (matching) records."""
    name: str
    value: ValueFn
    where: Optional[Predicate] = None

    def start(self) -> tuple[float, int]:
        return 0.0, 0

    def add(self, acc: tuple[float, int], record: Any) -> tuple[float, int]:
        if not _matches(self.where, record):
            return acc
        total, n = acc
        return total + to_number(_resolve(self.value)(record)), n + 1

    def finish(self, acc: tuple[float, int]) -> float:
        total, n = acc
        return safe_divide(total, n)


# ---------------------------------------------------------
# Second pass: derived metrics
# ---------------------------------------------------------

@dataclass(frozen=True)
class Ratio:
    """``totals[numerator] / totals[denominator] * scale``.

    ``scale=100`` gives a rate, ``scale=1`` an average.
    """
    name: str
    numerator: str
    denominator: str
    scale: float = 100.0

    def compute(self, totals: Mapping[str, Any]) -> float:
        return safe_divide(
            to_number(totals.get(self.numerator)),
            to_number(totals.get(self.denominator)),
        ) * self.scale


@dataclass(frozen=True)
class Derived:
    """Any function of the accumulated totals (e.g. net revenue)."""
    name: str
    fn: Callable[[Mapping[str, Any]], float]

    def compute(self, totals: Mapping[str, Any]) -> float:
        return to_number(self.fn(totals))


Metric = Union[Count, Sum, Distinct, Mean, Ratio, Derived]
MetricSpec = Sequence[Metric]


def _is_derived(metric: Metric) -> bool:
    return isinstance(metric, (Ratio, Derived))


def aggregate(records: Iterable[Any], spec: MetricSpec) -> Row:
    """Aggregate one group of records according to `spec`.

    Args:
        records: Records of a single group (may be empty).
        spec: Metric definitions; derived metrics may reference any
            accumulator and any derived metric listed before them.

    Returns:
        Dict with one entry per metric, in spec order.
    """
    accumulators = [m for m in spec if not _is_derived(m)]
    states = {m.name: m.start() for m in accumulators}

    for record in records:
        for m in accumulators:
            states[m.name] = m.add(states[m.name], record)

    totals: Row = {m.name: m.finish(states[m.name]) for m in accumulators}
    for m in spec:
        if _is_derived(m):
            totals[m.name] = m.compute(totals)

    return {m.name: totals[m.name] for m in spec}


def summarize(
    records: Iterable[Any],
    key_fn: KeyFn,
    spec: MetricSpec,
    key_name: str = "key",
    default: Optional[str] = None,
) -> List[Row]:
    """Group records with `key_fn` and aggregate every group with `spec`.

    Returns:
        One row per group: ``{key_name: key, **metrics}``. Order follows
        first appearance and carries no meaning.
    """
    groups = group_by(records, key_fn, default=default)
    return [{key_name: key, **aggregate(group, spec)} for key, group in groups.items()]


def column_totals(
    rows: Sequence[Mapping[str, Any]],
    sums: Iterable[str] = (),
    means: Iterable[str] = (),
) -> Row:
    """Footer row for a summary table: summed columns plus averaged columns."""
    out: Row = {}
    for name in sums:
        out[name] = sum(to_number(r.get(name)) for r in rows)
    for name in means:
        out[name] = safe_divide(sum(to_number(r.get(name)) for r in rows), len(rows))
    return out
