"""Validation utilities for the record snapshots.

Rows are validated against the pydantic record models, which apply the
missing-defaults-to-zero rules. Rows that still fail validation (for example
a row that is not a mapping at all) are counted rather than raised, so one
bad export row never takes the dashboard down.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, TypeVar

from pydantic import ValidationError

from studio_analytics.models import Record

log = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)


def validate_records(rows: Iterable[Any], model: type[R]) -> tuple[list[R], int]:
    """Validate raw rows into immutable records.

    Args:
        rows: Iterable of dict-like rows (snake_case or camelCase keys).
        model: Record model to validate against.

    Returns:
        A tuple of (list_of_validated_records, bad_count).
    """
    good: list[R] = []
    bad = 0

    for row in rows:
        try:
            good.append(model.model_validate(row))
        except ValidationError as exc:
            bad += 1
            log.debug("Rejected %s row: %s", model.__name__, exc.errors()[:1])

    if bad:
        log.warning("%s: %d rows failed validation", model.__name__, bad)
    log.info("%s: validated %d rows", model.__name__, len(good))
    return good, bad
