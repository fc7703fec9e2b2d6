"""Dashboard views built from the grouping and metric primitives.

Functions in this module turn record snapshots into the summary tables shown
on the studio dashboard: client conversion funnels, lead sources, sales by
product and location, discounts, trainer payroll and session fill rates.

Expectations:
- Input: sequences of validated records from `studio_analytics.models`
  (already filtered by the caller).
- Output: lists of plain dict rows (or a single dict for overview cards)
  with snake_case keys and raw, unrounded numbers. Rows with a time key are
  sorted chronologically; categorical rows are left for the caller to rank.
"""
from __future__ import annotations

from functools import partial
from typing import Any, Dict, List, Mapping, Optional, Sequence

from studio_analytics.aggregate.compare import growth_series, index_by, year_on_year
from studio_analytics.aggregate.grouping import (
    UNKNOWN,
    by_field,
    by_first_field,
    by_month,
    by_month_label,
    by_year,
    group_by,
)
from studio_analytics.aggregate.metrics import (
    Count,
    Derived,
    Distinct,
    Mean,
    Ratio,
    Row,
    Sum,
    aggregate,
    rate,
    safe_divide,
    summarize,
)
from studio_analytics.aggregate.ranking import rank, top_record
from studio_analytics.models import (
    ClientRecord,
    LeadRecord,
    PayrollRecord,
    SessionRecord,
    TransactionRecord,
)

CONVERTED = "Converted"
RETAINED = "Retained"
LOST = "Lost"
TRIAL_COMPLETED = "Trial Completed"


def _basket(t: Any) -> Optional[tuple]:
    if not t.member_id and not t.payment_date:
        return None
    return t.member_id, t.payment_date


def _converted(r: Any) -> bool:
    return r.conversion_status == CONVERTED


def _retained(r: Any) -> bool:
    return r.retention_status == RETAINED


def _by_time(rows: List[Row], key: str, descending: bool = False) -> List[Row]:
    return sorted(rows, key=lambda r: r[key], reverse=descending)


# =========================================================
# NEW CLIENTS
# =========================================================

CLIENT_FUNNEL = (
    Count("leads"),
    Count("trials", where=lambda c: c.visits_post_trial > 0),
    Count("conversions", where=_converted),
    Count("retained", where=_retained),
    Sum("total_ltv", "ltv"),
    Ratio("conversion_rate", "conversions", "leads"),
    Ratio("retention_rate", "retained", "leads"),
    Ratio("avg_ltv", "total_ltv", "leads", scale=1.0),
)

CLIENT_OVERVIEW = (
    Count("total_clients"),
    Count("converted", where=_converted),
    Count("retained", where=_retained),
    Count("new_clients", where=lambda c: c.is_new == "Yes"),
    Count("active_clients", where=lambda c: c.visits_post_trial > 0),
    Sum("total_ltv", "ltv"),
    Sum("converted_ltv", "ltv", where=_converted),
    Sum("total_visits_post_trial", "visits_post_trial"),
    Sum("total_purchases_post_trial", "purchase_count_post_trial"),
    Mean("avg_conversion_span", "conversion_span", where=lambda c: c.conversion_span > 0),
    Ratio("avg_ltv", "total_ltv", "total_clients", scale=1.0),
    Ratio("avg_converted_ltv", "converted_ltv", "converted", scale=1.0),
    Ratio("conversion_rate", "converted", "total_clients"),
    Ratio("retention_rate", "retained", "total_clients"),
    Ratio("new_client_rate", "new_clients", "total_clients"),
    Ratio("activation_rate", "active_clients", "total_clients"),
    Ratio("avg_visits_post_trial", "total_visits_post_trial", "total_clients", scale=1.0),
    Ratio("avg_purchase_count", "total_purchases_post_trial", "total_clients", scale=1.0),
)

MONTHLY_CONVERSION = (
    Count("new_clients"),
    Count("conversions", where=_converted),
    Count("retained", where=_retained),
    Sum("total_ltv", "ltv"),
    Ratio("conversion_rate", "conversions", "new_clients"),
    Ratio("retention_rate", "retained", "new_clients"),
    Ratio("avg_ltv", "total_ltv", "new_clients", scale=1.0),
)


def client_overview(clients: Sequence[ClientRecord]) -> Row:
    """Headline metric cards for the new-client section.

    Conversion span is averaged only over clients with a span set (> 0).
    """
    return aggregate(clients, CLIENT_OVERVIEW)


def client_source_summary(clients: Sequence[ClientRecord]) -> List[Row]:
    """Funnel metrics per lead source (first visit entity)."""
    return summarize(clients, by_field("first_visit_entity_name"), CLIENT_FUNNEL, "source", UNKNOWN)


def client_stage_summary(clients: Sequence[ClientRecord]) -> List[Row]:
    """Funnel metrics per first visit type."""
    return summarize(clients, by_field("first_visit_type"), CLIENT_FUNNEL, "stage", UNKNOWN)


def client_associate_summary(clients: Sequence[ClientRecord]) -> List[Row]:
    """Funnel metrics per trainer who ran the first visit."""
    return summarize(clients, by_field("trainer_name"), CLIENT_FUNNEL, "associate", UNKNOWN)


def client_class_type_summary(clients: Sequence[ClientRecord]) -> List[Row]:
    """Funnel metrics per membership used, falling back to first visit type."""
    return summarize(
        clients,
        by_first_field("membership_used", "first_visit_type"),
        CLIENT_FUNNEL,
        "class_type",
        UNKNOWN,
    )


def monthly_client_conversion(clients: Sequence[ClientRecord]) -> List[Row]:
    """Conversion trend by month of first visit, oldest month first.

    Clients without a readable first visit date are left out.
    """
    rows = summarize(clients, by_month("first_visit_date"), MONTHLY_CONVERSION, "month")
    return _by_time(rows, "month")


# =========================================================
# LEADS
# =========================================================

LEAD_FUNNEL = (
    Count("leads"),
    Count("conversions", where=_converted),
    Sum("total_ltv", "ltv"),
    Ratio("conversion_rate", "conversions", "leads"),
    Ratio("avg_ltv", "total_ltv", "leads", scale=1.0),
)

LEAD_YEAR = (
    Count("total_leads"),
    Count("converted_leads", where=_converted),
    Count("trials_completed", where=lambda lead: lead.stage == TRIAL_COMPLETED),
    Count("lost_leads", where=lambda lead: lead.conversion_status == LOST),
    Sum("total_revenue", "ltv"),
    Ratio("conversion_rate", "converted_leads", "total_leads"),
    Ratio("trial_rate", "trials_completed", "total_leads"),
)


def lead_source_summary(leads: Sequence[LeadRecord]) -> List[Row]:
    """Leads, conversions and LTV per lead source."""
    return summarize(leads, by_field("source"), LEAD_FUNNEL, "source", UNKNOWN)


def lead_associate_summary(leads: Sequence[LeadRecord]) -> List[Row]:
    return summarize(leads, by_field("associate"), LEAD_FUNNEL, "associate", UNKNOWN)


def lead_stage_summary(leads: Sequence[LeadRecord]) -> List[Row]:
    return summarize(leads, by_field("stage"), LEAD_FUNNEL, "stage", UNKNOWN)


def lead_source_year_on_year(leads: Sequence[LeadRecord]) -> List[Row]:
    """Per-source yearly lead totals with growth against the prior year.

    Every source gets a row for every year present in the snapshot (zero
    rows where a source had no leads that year), ascending by year. Growth
    columns compare each year with the previous one; the first year is the
    baseline and reports 0. Leads without a readable ``created_at`` are left
    out.
    """
    dated = group_by(leads, by_year("created_at"))
    years = sorted(dated)
    out: List[Row] = []

    for source, source_leads in group_by(leads, by_field("source"), UNKNOWN).items():
        by_year_rows = group_by(source_leads, by_year("created_at"))
        series = [
            {"source": source, "year": year, **aggregate(by_year_rows.get(year, []), LEAD_YEAR)}
            for year in years
        ]
        with_growth = growth_series(series, "total_leads")
        revenue_growth = growth_series(series, "total_revenue")
        for row, rev in zip(with_growth, revenue_growth):
            row["lead_growth"] = row.pop("growth_rate")
            row.pop("difference")
            row["revenue_growth"] = rev["growth_rate"]
            out.append(row)

    return out


# =========================================================
# SALES
# =========================================================

SALES = (
    Sum("revenue", "payment_value"),
    Count("transactions"),
    Distinct("unique_members", "member_id"),
    Sum("vat", "payment_vat"),
    Sum("discounts", "discount_amount"),
    Ratio("avg_order_value", "revenue", "transactions", scale=1.0),
    Derived("net_revenue", lambda t: t["revenue"] - t["vat"]),
    Ratio("discount_rate", "discounts", "revenue"),
)

# Year-on-year metric set. Every sales row is one unit sold; a transaction
# (basket) is one member paying on one date.
SALES_YEAR = (
    Sum("revenue", "payment_value"),
    Distinct("transactions", _basket),
    Distinct("members", "member_id"),
    Count("units"),
    Sum("vat", "payment_vat"),
    Ratio("atv", "revenue", "transactions", scale=1.0),
    Ratio("auv", "revenue", "units", scale=1.0),
    Ratio("asv", "revenue", "members", scale=1.0),
    Ratio("upt", "units", "transactions", scale=1.0),
)

YEAR_ON_YEAR_METRICS = ("revenue", "transactions", "members", "atv", "auv", "asv", "upt", "vat", "units")


def sales_by_product(sales: Sequence[TransactionRecord]) -> List[Row]:
    return summarize(sales, by_field("product"), SALES, "product", UNKNOWN)


def sales_by_location(sales: Sequence[TransactionRecord]) -> List[Row]:
    return summarize(sales, by_field("location"), SALES, "location", UNKNOWN)


def sales_by_category(sales: Sequence[TransactionRecord]) -> List[Row]:
    return summarize(sales, by_field("category"), SALES, "category", UNKNOWN)


def sales_by_seller(sales: Sequence[TransactionRecord]) -> List[Row]:
    return summarize(sales, by_field("sold_by"), SALES, "sold_by", UNKNOWN)


def monthly_sales(sales: Sequence[TransactionRecord]) -> List[Row]:
    """Sales metrics per payment month with month-on-month revenue growth."""
    rows = _by_time(summarize(sales, by_month("payment_date"), SALES, "month"), "month")
    return growth_series(rows, "revenue")


def yearly_sales(sales: Sequence[TransactionRecord]) -> List[Row]:
    """Year-on-year metric set per payment year, most recent first."""
    rows = summarize(sales, by_year("payment_date"), SALES_YEAR, "year")
    return _by_time(rows, "year", descending=True)


def sales_year_on_year(sales: Sequence[TransactionRecord], metric: str = "revenue") -> List[Row]:
    """Compare the latest payment year with the one before on `metric`.

    Raises:
        ValueError: if `metric` is not one of ``YEAR_ON_YEAR_METRICS``.
    """
    if metric not in YEAR_ON_YEAR_METRICS:
        raise ValueError(f"Unknown year-on-year metric: {metric!r}")
    return year_on_year(index_by(yearly_sales(sales), "year"), metric)


# =========================================================
# DISCOUNTS
# =========================================================

DISCOUNTS = (
    Count("total_transactions"),
    Sum("total_discount_amount", "discount_amount"),
    Sum("total_revenue", "payment_value"),
    Sum("total_potential_revenue", lambda t: t.payment_value + t.discount_amount),
    Mean("avg_discount_percentage", "discount_percentage"),
    Ratio("discount_effectiveness", "total_revenue", "total_potential_revenue"),
    Ratio("revenue_impact_rate", "total_discount_amount", "total_potential_revenue"),
)

DISCOUNT_BREAKDOWN = (
    Count("transactions"),
    Sum("total_discount", "discount_amount"),
    Sum("revenue", "payment_value"),
    Mean("avg_discount_percentage", "discount_percentage"),
    Ratio("avg_discount_per_transaction", "total_discount", "transactions", scale=1.0),
    Ratio("discount_rate", "total_discount", "revenue"),
)


def discount_summary(sales: Sequence[TransactionRecord], top_n: int = 10) -> Dict[str, Any]:
    """Discount impact over discounted transactions only.

    Returns:
        Dict with the overview totals, ``product_breakdown`` (top `top_n`
        products by total discount) and ``monthly_breakdown`` (ascending).
    """
    discounted = [t for t in sales if t.discount_amount > 0]
    products = summarize(discounted, by_field("product"), DISCOUNT_BREAKDOWN, "product", UNKNOWN)
    months = summarize(discounted, by_month("payment_date"), DISCOUNT_BREAKDOWN, "month")
    return {
        **aggregate(discounted, DISCOUNTS),
        "product_breakdown": rank(products, "total_discount", top_n),
        "monthly_breakdown": _by_time(months, "month"),
    }


# =========================================================
# TRAINERS / PAYROLL
# =========================================================

TRAINER = (
    Sum("total_sessions", "total_sessions"),
    Sum("total_customers", "total_customers"),
    Sum("total_revenue", "total_paid"),
    Sum("total_empty_sessions", "total_empty_sessions"),
    Sum("total_non_empty_sessions", "total_non_empty_sessions"),
    Sum("cycle_sessions", "cycle_sessions"),
    Sum("barre_sessions", "barre_sessions"),
    Sum("cycle_revenue", "cycle_paid"),
    Sum("barre_revenue", "barre_paid"),
    Sum("total_new_members", "new"),
    Sum("total_retained", "retained"),
    Sum("total_converted", "converted"),
    Mean("avg_retention", "retention"),
    Mean("avg_conversion", "conversion"),
    Ratio("avg_class_size", "total_customers", "total_non_empty_sessions", scale=1.0),
    Ratio("class_average_incl_empty", "total_customers", "total_sessions", scale=1.0),
    Ratio("revenue_per_session", "total_revenue", "total_sessions", scale=1.0),
    Ratio("revenue_per_customer", "total_revenue", "total_customers", scale=1.0),
    Derived("non_empty_sessions", lambda t: t["total_sessions"] - t["total_empty_sessions"]),
    Ratio("utilization_rate", "non_empty_sessions", "total_sessions"),
)


def trainer_overview(payroll: Sequence[PayrollRecord]) -> Row:
    """Headline trainer metrics plus the top row by revenue, sessions and customers.

    Retention and conversion are the mean of the per-row percentages.
    """
    def top_name(attr: str) -> Optional[str]:
        top = top_record(payroll, lambda p: getattr(p, attr))
        return top.teacher_name if top is not None else None

    return {
        **aggregate(payroll, (*TRAINER, Distinct("trainer_count", "teacher_name"))),
        "top_revenue_trainer": top_name("total_paid"),
        "top_sessions_trainer": top_name("total_sessions"),
        "top_customers_trainer": top_name("total_customers"),
    }


def trainer_summary(payroll: Sequence[PayrollRecord]) -> List[Row]:
    """Payroll metrics per trainer."""
    return summarize(payroll, by_field("teacher_name"), TRAINER, "trainer", UNKNOWN)


def trainer_location_summary(payroll: Sequence[PayrollRecord]) -> List[Row]:
    return summarize(payroll, by_field("location"), TRAINER, "location", UNKNOWN)


def trainer_month_on_month(
    payroll: Sequence[PayrollRecord],
    metric: str = "total_sessions",
) -> List[Row]:
    """Payroll metrics per month (``Mon-YYYY`` labels), oldest first, with
    the change in `metric` against the previous month."""
    rows = _by_time(summarize(payroll, by_month_label("month_year"), TRAINER, "month"), "month")
    return growth_series(rows, metric)


# =========================================================
# SESSIONS
# =========================================================

SESSIONS = (
    Count("sessions"),
    Sum("checked_in", "checked_in"),
    Sum("capacity", "capacity"),
    Sum("revenue", "revenue"),
    Count("empty_sessions", where=lambda s: s.checked_in <= 0),
    Ratio("fill_rate", "checked_in", "capacity"),
    Ratio("avg_session_revenue", "revenue", "sessions", scale=1.0),
    Ratio("avg_attendance", "checked_in", "sessions", scale=1.0),
)


def session_summary(sessions: Sequence[SessionRecord], by: str = "class_name") -> List[Row]:
    """Attendance and fill rate per class, trainer or location.

    Args:
        sessions: Session records.
        by: Session attribute to group on (``class_name``, ``trainer_name``
            or ``location``).
    """
    return summarize(sessions, by_field(by), SESSIONS, by, UNKNOWN)


# =========================================================
# EXECUTIVE SUMMARY
# =========================================================

def executive_summary(
    sales: Sequence[TransactionRecord],
    sessions: Sequence[SessionRecord] = (),
    leads: Sequence[LeadRecord] = (),
    payroll: Sequence[PayrollRecord] = (),
) -> Row:
    """Cross-domain headline metrics for the executive page.

    Conversion rate here is unique paying members over total leads.
    """
    s = aggregate(sales, SALES)
    sess = aggregate(sessions, SESSIONS)
    pay = aggregate(
        payroll,
        (
            Sum("trainer_payouts", "total_paid"),
            Distinct("unique_trainers", "teacher_name"),
            Ratio("avg_trainer_payout", "trainer_payouts", "unique_trainers", scale=1.0),
        ),
    )
    return {
        "total_revenue": s["revenue"],
        "net_revenue": s["net_revenue"],
        "total_transactions": s["transactions"],
        "unique_members": s["unique_members"],
        "total_vat": s["vat"],
        "total_discounts": s["discounts"],
        "avg_order_value": s["avg_order_value"],
        "total_sessions": sess["sessions"],
        "total_checked_ins": sess["checked_in"],
        "total_capacity": sess["capacity"],
        "fill_rate": sess["fill_rate"],
        "avg_session_revenue": sess["avg_session_revenue"],
        "total_leads": len(leads),
        **pay,
        "conversion_rate": rate(s["unique_members"], len(leads)),
        "revenue_per_member": safe_divide(s["revenue"], s["unique_members"]),
    }


VIEWS: Mapping[str, Mapping[str, Any]] = {
    "clients": {
        "overview": client_overview,
        "source": client_source_summary,
        "stage": client_stage_summary,
        "associate": client_associate_summary,
        "class_type": client_class_type_summary,
        "monthly": monthly_client_conversion,
    },
    "leads": {
        "source": lead_source_summary,
        "associate": lead_associate_summary,
        "stage": lead_stage_summary,
        "year_on_year": lead_source_year_on_year,
    },
    "sales": {
        "product": sales_by_product,
        "location": sales_by_location,
        "category": sales_by_category,
        "seller": sales_by_seller,
        "monthly": monthly_sales,
        "yearly": yearly_sales,
        "year_on_year": sales_year_on_year,
        "discounts": discount_summary,
    },
    "payroll": {
        "overview": trainer_overview,
        "trainer": trainer_summary,
        "location": trainer_location_summary,
        "monthly": trainer_month_on_month,
    },
    "sessions": {
        "class": session_summary,
        "trainer": partial(session_summary, by="trainer_name"),
        "location": partial(session_summary, by="location"),
    },
}


def view_names(domain: str) -> Optional[List[str]]:
    views = VIEWS.get(domain)
    return sorted(views) if views is not None else None
