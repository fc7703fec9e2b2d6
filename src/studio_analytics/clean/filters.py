"""Filter sets applied to record snapshots before grouping.

Each filter set is a frozen dataclass whose `predicates()` lists one
predicate per active constraint; `apply_filters` keeps the records that
satisfy all of them (logical AND). Empty lists and unset bounds mean
"no constraint".
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from studio_analytics.clean.dates import parse_date
from studio_analytics.models import to_number

T = TypeVar("T")
Predicate = Callable[[Any], bool]


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range; either end may be open."""
    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def active(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, value: Any) -> bool:
        """Return True if `value` parses to a date inside the range.

        Unparseable dates are never inside an active range.
        """
        parts = parse_date(value)
        if parts is None:
            return False
        day = parts.to_date()
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _date_predicate(attr: str, date_range: DateRange) -> List[Predicate]:
    if not date_range.active:
        return []
    return [lambda r: date_range.contains(getattr(r, attr))]


def _member_predicates(allowed_by_attr: dict[str, Sequence[str]]) -> List[Predicate]:
    preds: List[Predicate] = []
    for attr, allowed in allowed_by_attr.items():
        if not allowed:
            continue
        allowed_set = frozenset(allowed)
        preds.append(lambda r, attr=attr, allowed_set=allowed_set: getattr(r, attr) in allowed_set)
    return preds


def _bound_predicates(attr: str, low: Optional[float], high: Optional[float]) -> List[Predicate]:
    preds: List[Predicate] = []
    if low is not None:
        preds.append(lambda r: getattr(r, attr) >= low)
    if high is not None:
        preds.append(lambda r: getattr(r, attr) <= high)
    return preds


@dataclass(frozen=True)
class ClientFilters:
    date_range: DateRange = field(default_factory=DateRange)
    location: List[str] = field(default_factory=list)
    home_location: List[str] = field(default_factory=list)
    trainer: List[str] = field(default_factory=list)
    payment_method: List[str] = field(default_factory=list)
    retention_status: List[str] = field(default_factory=list)
    conversion_status: List[str] = field(default_factory=list)
    is_new: List[str] = field(default_factory=list)
    min_ltv: Optional[float] = None
    max_ltv: Optional[float] = None

    def predicates(self) -> List[Predicate]:
        return [
            *_date_predicate("first_visit_date", self.date_range),
            *_member_predicates(
                {
                    "first_visit_location": self.location,
                    "home_location": self.home_location,
                    "trainer_name": self.trainer,
                    "payment_method": self.payment_method,
                    "retention_status": self.retention_status,
                    "conversion_status": self.conversion_status,
                    "is_new": self.is_new,
                }
            ),
            *_bound_predicates("ltv", self.min_ltv, self.max_ltv),
        ]


@dataclass(frozen=True)
class SalesFilters:
    date_range: DateRange = field(default_factory=DateRange)
    location: List[str] = field(default_factory=list)
    category: List[str] = field(default_factory=list)
    product: List[str] = field(default_factory=list)
    sold_by: List[str] = field(default_factory=list)
    payment_method: List[str] = field(default_factory=list)
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None

    def predicates(self) -> List[Predicate]:
        return [
            *_date_predicate("payment_date", self.date_range),
            *_member_predicates(
                {
                    "location": self.location,
                    "category": self.category,
                    "product": self.product,
                    "sold_by": self.sold_by,
                    "payment_method": self.payment_method,
                }
            ),
            *_bound_predicates("payment_value", self.min_amount, self.max_amount),
        ]


@dataclass(frozen=True)
class LeadFilters:
    date_range: DateRange = field(default_factory=DateRange)
    source: List[str] = field(default_factory=list)
    stage: List[str] = field(default_factory=list)
    associate: List[str] = field(default_factory=list)
    conversion_status: List[str] = field(default_factory=list)
    min_ltv: Optional[float] = None
    max_ltv: Optional[float] = None

    def predicates(self) -> List[Predicate]:
        return [
            *_date_predicate("created_at", self.date_range),
            *_member_predicates(
                {
                    "source": self.source,
                    "stage": self.stage,
                    "associate": self.associate,
                    "conversion_status": self.conversion_status,
                }
            ),
            *_bound_predicates("ltv", self.min_ltv, self.max_ltv),
        ]


@dataclass(frozen=True)
class PayrollFilters:
    location: List[str] = field(default_factory=list)
    trainer: List[str] = field(default_factory=list)
    month_year: List[str] = field(default_factory=list)

    def predicates(self) -> List[Predicate]:
        return _member_predicates(
            {
                "location": self.location,
                "teacher_name": self.trainer,
                "month_year": self.month_year,
            }
        )


def apply_filters(records: Iterable[T], filters: Any) -> List[T]:
    """Return the records that satisfy every active predicate of `filters`.

    The input is never mutated; a new list is always returned.
    """
    preds = filters.predicates() if filters is not None else []
    return [r for r in records if all(p(r) for p in preds)]


def _as_str_list(values: Any) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _as_date(value: Any) -> Optional[date]:
    parts = parse_date(value)
    return parts.to_date() if parts else None


def _as_bound(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_number(value)


def filters_from_dict(filters_cls: type[T], raw: Optional[dict[str, Any]]) -> T:
    """Build a filter set from a loosely typed dict (CLI flags, JSON).

    Unknown keys are ignored; list fields accept a single string or a list;
    ``date_range`` accepts ``{"start": ..., "end": ...}`` in any format
    `parse_date` understands; ``min_*``/``max_*`` bounds are coerced to float.
    Values that cannot be read are dropped rather than raised.
    """
    raw = raw or {}
    kwargs: dict[str, Any] = {}

    for f in dataclasses.fields(filters_cls):  # type: ignore[arg-type]
        if f.name not in raw:
            continue
        value = raw[f.name]
        if f.name == "date_range":
            if not isinstance(value, dict):
                value = {}
            kwargs[f.name] = DateRange(
                start=_as_date(value.get("start")),
                end=_as_date(value.get("end")),
            )
        elif f.name.startswith(("min_", "max_")):
            kwargs[f.name] = _as_bound(value)
        else:
            kwargs[f.name] = _as_str_list(value)

    return filters_cls(**kwargs)
