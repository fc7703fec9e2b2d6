"""Mapping of sheet rows to record fields.

Sheet tabs and CSV exports use human headers ("Member ID", "Payment VAT",
"Cleaned Product"). Headers are snake_cased by default; the per-domain
column maps below cover the ones that do not line up with a field name.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Sequence

from studio_analytics.clean.validate import validate_records
from studio_analytics.models import MODELS, Record

log = logging.getLogger(__name__)

SALES_COLUMNS = {
    "Cleaned Product": "product",
    "Cleaned Category": "category",
    "Calculated Location": "location",
    "Payment VAT": "payment_vat",
    "VAT": "payment_vat",
    "Discount Amount -Mrp- Payment Value": "discount_amount",
    "Discount Percentage - discount amount/mrp*100": "discount_percentage",
    "Mrp - Post Tax": "gross_revenue",
    "MRP Post Tax": "gross_revenue",
}

CLIENT_COLUMNS = {
    "First Visit Entity": "first_visit_entity_name",
    "No of Purchases Post Trial": "purchase_count_post_trial",
    "Purchases Post Trial": "purchase_count_post_trial",
    "Trainer": "trainer_name",
    "New": "is_new",
}

LEAD_COLUMNS = {
    "Lead Source": "source",
    "Lead Owner": "associate",
    "Created": "created_at",
    "Created Date": "created_at",
}

PAYROLL_COLUMNS = {
    "Teacher": "teacher_name",
    "Trainer": "teacher_name",
    "Month": "month_year",
    "Cycle Payment": "cycle_paid",
    "Barre Payment": "barre_paid",
}

SESSION_COLUMNS = {
    "Cleaned Class": "class_name",
    "Class": "class_name",
    "Trainer": "trainer_name",
    "Teacher Name": "trainer_name",
    "Checked In": "checked_in",
    "Checked-In": "checked_in",
    "Session Date": "date",
}

COLUMNS: dict[str, Mapping[str, str]] = {
    "sales": SALES_COLUMNS,
    "clients": CLIENT_COLUMNS,
    "leads": LEAD_COLUMNS,
    "payroll": PAYROLL_COLUMNS,
    "sessions": SESSION_COLUMNS,
}

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD_RE = re.compile(r"[^0-9A-Za-z]+")


def snake_case(header: str) -> str:
    """Turn a sheet header (``"Payment VAT"``, ``"memberId"``) into a field name."""
    text = _CAMEL_RE.sub("_", str(header).strip())
    return _NON_WORD_RE.sub("_", text).strip("_").lower()


def _header_key(header: str) -> str:
    return " ".join(str(header).split()).lower()


def rows_to_dicts(values: Sequence[Sequence[Any]]) -> list[dict[str, Any]]:
    """Convert Sheets ``values`` (header row first) into dict rows.

    Short rows are padded with empty strings. Fewer than two rows (no data
    under the header) yields an empty list.
    """
    if len(values) < 2:
        return []

    header = [str(h) for h in values[0]]
    out: list[dict[str, Any]] = []
    for row in values[1:]:
        cells = list(row) + [""] * (len(header) - len(row))
        out.append(dict(zip(header, cells)))
    return out


def normalize_columns(row: Mapping[str, Any], columns: Mapping[str, str]) -> dict[str, Any]:
    """Rename a row's headers to record field names.

    When two headers map to the same field the first non-empty value wins.
    """
    lookup = {_header_key(k): v for k, v in columns.items()}
    out: dict[str, Any] = {}
    for header, value in row.items():
        field = lookup.get(_header_key(header)) or snake_case(header)
        if field in out and out[field] not in (None, ""):
            continue
        out[field] = value
    return out


def load_records(rows: Iterable[Mapping[str, Any]], domain: str) -> tuple[list[Record], int]:
    """Normalize and validate dict rows for one data domain.

    Args:
        rows: Dict rows keyed by sheet headers.
        domain: One of ``sales``, ``clients``, ``leads``, ``payroll``, ``sessions``.

    Returns:
        A tuple of (records, bad_count).

    Raises:
        ValueError: for an unknown domain.
    """
    if domain not in MODELS:
        raise ValueError(f"Unknown data domain: {domain!r}")

    columns = COLUMNS[domain]
    normalized = (normalize_columns(r, columns) for r in rows)
    records, bad = validate_records(normalized, MODELS[domain])
    log.info("Loaded %d %s records (%d rejected)", len(records), domain, bad)
    return records, bad
