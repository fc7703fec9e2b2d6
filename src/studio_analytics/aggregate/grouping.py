"""Generic grouping of record snapshots into buckets."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from studio_analytics.clean.dates import month_key, parse_month_year, year_key

T = TypeVar("T")
KeyFn = Callable[[T], Optional[str]]

UNKNOWN = "Unknown"


def group_by(
    records: Iterable[T],
    key_fn: KeyFn,
    default: Optional[str] = None,
) -> Dict[str, List[T]]:
    """Bucket records by the key `key_fn` returns.

    Records whose key is None or an empty string are excluded, unless
    `default` is given, in which case they are placed under `default`.
    Categorical keys (source, trainer, product) pass ``UNKNOWN``; time keys
    pass nothing so unparseable dates drop out.

    Key order is not meaningful; sort before display.
    """
    groups: Dict[str, List[T]] = {}
    for record in records:
        key = key_fn(record)
        if key is None or key == "":
            if default is None:
                continue
            key = default
        groups.setdefault(str(key), []).append(record)
    return groups


def by_field(attr: str) -> KeyFn:
    """Key function reading a categorical attribute."""
    return lambda r: getattr(r, attr, None)


def by_first_field(*attrs: str) -> KeyFn:
    """Key function returning the first non-empty attribute of `attrs`."""

    def key(r: Any) -> Optional[str]:
        for attr in attrs:
            value = getattr(r, attr, None)
            if value:
                return value
        return None

    return key


def by_month(attr: str) -> KeyFn:
    """Key function returning the ``YYYY-MM`` key of a date attribute."""
    return lambda r: month_key(getattr(r, attr, None))


def by_year(attr: str) -> KeyFn:
    """Key function returning the ``YYYY`` key of a date attribute."""
    return lambda r: year_key(getattr(r, attr, None))


def by_month_label(attr: str) -> KeyFn:
    """Key function for ``Mon-YYYY`` labels (payroll), as ``YYYY-MM``."""

    def key(r: Any) -> Optional[str]:
        parts = parse_month_year(getattr(r, attr, None))
        return parts.month_key if parts else None

    return key
