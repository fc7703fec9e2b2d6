"""Pydantic models for the record snapshots the dashboard aggregates.

Every record is normalized once, at the ingestion boundary: numeric fields
that are missing, blank or not numeric become 0, text fields become stripped
strings. The aggregation layer can therefore assume fully-populated records.

Models accept both snake_case field names and the camelCase keys used by the
sheet exports (``memberId``, ``paymentVAT``, ``visitsPostTrial``, ...).
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

_NUMERIC_NOISE = str.maketrans("", "", "%,₹$€£ ")


def to_number(value: Any) -> float:
    """Coerce a loosely typed cell value to a finite float, defaulting to 0.

    Accepts numbers, numeric strings with thousands separators, currency
    symbols or a trailing ``%``. Anything else (None, blanks, NaN, text)
    becomes 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, str):
        cleaned = value.translate(_NUMERIC_NOISE)
        if not cleaned:
            return 0.0
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    return number if math.isfinite(number) else 0.0


def to_count(value: Any) -> int:
    """Coerce a cell value to an int count (truncating), defaulting to 0."""
    return int(to_number(value))


def to_text(value: Any) -> str:
    """Coerce a cell value to a stripped string; None and NaN become ''."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


Number = Annotated[float, BeforeValidator(to_number)]
Count = Annotated[int, BeforeValidator(to_count)]
Text = Annotated[str, BeforeValidator(to_text)]


class Record(BaseModel):
    """Base for all snapshot records (immutable, extra columns ignored)."""
    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class TransactionRecord(Record):
    """A single sales transaction row.

    ``payment_value`` may be zero or negative (refunds).
    """
    member_id: Text = ""
    customer_name: Text = ""
    payment_date: Text = ""
    payment_value: Number = 0.0
    payment_vat: Number = Field(
        default=0.0, validation_alias=AliasChoices("payment_vat", "paymentVAT", "vat")
    )
    product: Text = Field(
        default="", validation_alias=AliasChoices("product", "cleanedProduct")
    )
    category: Text = Field(
        default="", validation_alias=AliasChoices("category", "cleanedCategory")
    )
    location: Text = Field(
        default="", validation_alias=AliasChoices("location", "calculatedLocation")
    )
    discount_amount: Number = 0.0
    discount_percentage: Number = 0.0
    gross_revenue: Number = 0.0
    payment_method: Text = ""
    sold_by: Text = ""


class ClientRecord(Record):
    """A new-client record tracking trial, conversion and retention."""
    member_id: Text = ""
    first_visit_date: Text = ""
    first_visit_location: Text = ""
    first_visit_entity_name: Text = ""
    first_visit_type: Text = ""
    membership_used: Text = ""
    home_location: Text = ""
    trainer_name: Text = ""
    payment_method: Text = ""
    is_new: Text = ""
    visits_post_trial: Count = 0
    purchase_count_post_trial: Count = 0
    ltv: Number = 0.0
    conversion_status: Text = ""
    retention_status: Text = ""
    conversion_span: Number = 0.0


class LeadRecord(Record):
    """A lead captured from the funnel."""
    source: Text = ""
    stage: Text = ""
    associate: Text = ""
    created_at: Text = ""
    conversion_status: Text = ""
    ltv: Number = 0.0


class PayrollRecord(Record):
    """A trainer payroll row for one teacher, location and month.

    ``retention`` and ``conversion`` arrive as numbers or ``"NN%"`` strings
    and are stored as percentages.
    """
    teacher_name: Text = ""
    location: Text = ""
    month_year: Text = ""
    total_sessions: Number = 0.0
    total_customers: Number = 0.0
    total_paid: Number = 0.0
    total_empty_sessions: Number = 0.0
    total_non_empty_sessions: Number = 0.0
    cycle_sessions: Number = 0.0
    barre_sessions: Number = 0.0
    cycle_paid: Number = 0.0
    barre_paid: Number = 0.0
    retention: Number = 0.0
    conversion: Number = 0.0
    new: Number = 0.0
    retained: Number = 0.0
    converted: Number = 0.0


class SessionRecord(Record):
    """A scheduled class session with attendance and capacity."""
    session_id: Text = ""
    class_name: Text = ""
    trainer_name: Text = ""
    location: Text = ""
    date: Text = ""
    capacity: Number = 0.0
    checked_in: Number = 0.0
    revenue: Number = 0.0


MODELS: dict[str, type[Record]] = {
    "sales": TransactionRecord,
    "clients": ClientRecord,
    "leads": LeadRecord,
    "payroll": PayrollRecord,
    "sessions": SessionRecord,
}
