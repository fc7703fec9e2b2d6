from __future__ import annotations

import pytest

from studio_analytics.aggregate import views
from studio_analytics.aggregate.metrics import aggregate
from studio_analytics.models import (
    ClientRecord,
    LeadRecord,
    PayrollRecord,
    SessionRecord,
    TransactionRecord,
)


def _by(rows: list[dict], key: str) -> dict:
    return {r[key]: r for r in rows}


def _sales() -> list[TransactionRecord]:
    return [
        TransactionRecord(member_id="m1", payment_date="01/01/2024", payment_value=1000,
                          payment_vat=180, product="Barre", location="Kwality House"),
        TransactionRecord(member_id="m2", payment_date="15/01/2024", payment_value=500,
                          payment_vat=90, product="Barre", location="Kemps",
                          discount_amount=100, discount_percentage=16.67),
        TransactionRecord(member_id="m1", payment_date="03/02/2024", payment_value=2000,
                          payment_vat=360, product="Cycle", location="Kwality House"),
    ]


def _clients() -> list[ClientRecord]:
    return [
        ClientRecord(member_id="c1", first_visit_entity_name="Instagram", first_visit_type="Trial",
                     trainer_name="Asha", first_visit_date="05/01/2024", visits_post_trial=3,
                     ltv=5000, conversion_status="Converted", retention_status="Retained",
                     is_new="Yes", conversion_span=10),
        ClientRecord(member_id="c2", first_visit_entity_name="Instagram", first_visit_type="Trial",
                     trainer_name="Ravi", first_visit_date="20/01/2024",
                     conversion_status="Not Converted", retention_status="Not Retained", is_new="Yes"),
        ClientRecord(member_id="c3", first_visit_type="Walk-in", trainer_name="Asha",
                     first_visit_date="12/02/2024", visits_post_trial=1, ltv=1000,
                     conversion_status="Converted", retention_status="Not Retained",
                     is_new="No", conversion_span=20),
        ClientRecord(member_id="c4", first_visit_entity_name="Website"),
    ]


def _payroll() -> list[PayrollRecord]:
    return [
        PayrollRecord(teacher_name="Asha", location="Kwality House", month_year="Jan-2024",
                      total_sessions=10, total_customers=80, total_paid=5000,
                      total_empty_sessions=2, total_non_empty_sessions=8,
                      retention="50%", conversion="10%"),
        PayrollRecord(teacher_name="Ravi", location="Kemps", month_year="Feb-2024",
                      total_sessions=20, total_customers=100, total_paid=4000,
                      total_empty_sessions=0, total_non_empty_sessions=20,
                      retention="70%", conversion="30%"),
    ]


def _sessions() -> list[SessionRecord]:
    return [
        SessionRecord(class_name="Barre 57", trainer_name="Asha", capacity=20, checked_in=15, revenue=3000),
        SessionRecord(class_name="Barre 57", trainer_name="Ravi", capacity=20, checked_in=0, revenue=0),
        SessionRecord(class_name="PowerCycle", trainer_name="Asha", capacity=10, checked_in=10, revenue=2000),
    ]


# ---------------- leads ----------------

def test_lead_source_summary_groups_by_source() -> None:
    leads = [
        LeadRecord(source="A", ltv=100, conversion_status="Converted"),
        LeadRecord(source="A", ltv=50, conversion_status="Lost"),
        LeadRecord(source="B", ltv=200, conversion_status="Converted"),
    ]
    rows = _by(views.lead_source_summary(leads), "source")
    assert rows["A"]["leads"] == 2
    assert rows["A"]["conversions"] == 1
    assert rows["A"]["total_ltv"] == 150
    assert rows["A"]["conversion_rate"] == pytest.approx(50.0)
    assert rows["B"]["leads"] == 1
    assert rows["B"]["conversions"] == 1
    assert rows["B"]["total_ltv"] == 200
    assert rows["B"]["conversion_rate"] == pytest.approx(100.0)


def test_lead_source_year_on_year() -> None:
    leads = [
        LeadRecord(source="A", created_at="01/03/2023", ltv=100),
        LeadRecord(source="A", created_at="01/04/2023", ltv=100, stage="Trial Completed"),
        LeadRecord(source="A", created_at="01/03/2024", ltv=300, conversion_status="Converted"),
        LeadRecord(source="A", created_at="02/03/2024", conversion_status="Lost"),
        LeadRecord(source="A", created_at="03/03/2024"),
        LeadRecord(source="B", created_at="10/10/2024"),
        LeadRecord(source="B", created_at=""),
    ]
    rows = views.lead_source_year_on_year(leads)
    a = {r["year"]: r for r in rows if r["source"] == "A"}
    b = {r["year"]: r for r in rows if r["source"] == "B"}

    assert a["2023"]["total_leads"] == 2
    assert a["2023"]["trials_completed"] == 1
    assert a["2023"]["lead_growth"] == 0
    assert a["2024"]["total_leads"] == 3
    assert a["2024"]["converted_leads"] == 1
    assert a["2024"]["lost_leads"] == 1
    assert a["2024"]["lead_growth"] == pytest.approx(50.0)
    assert a["2024"]["revenue_growth"] == pytest.approx(50.0)
    # B has no 2023 leads; zero previous means 0% growth
    assert b["2023"]["total_leads"] == 0
    assert b["2024"]["total_leads"] == 1
    assert b["2024"]["lead_growth"] == 0


def test_lead_stage_and_associate_default_to_unknown() -> None:
    leads = [LeadRecord(stage="Trial Completed", associate="Maya"), LeadRecord()]
    assert sorted(r["stage"] for r in views.lead_stage_summary(leads)) == ["Trial Completed", "Unknown"]
    assert sorted(r["associate"] for r in views.lead_associate_summary(leads)) == ["Maya", "Unknown"]


# ---------------- clients ----------------

def test_client_source_summary() -> None:
    rows = _by(views.client_source_summary(_clients()), "source")
    insta = rows["Instagram"]
    assert insta["leads"] == 2
    assert insta["trials"] == 1
    assert insta["conversions"] == 1
    assert insta["retained"] == 1
    assert insta["conversion_rate"] == pytest.approx(50.0)
    assert insta["avg_ltv"] == pytest.approx(2500.0)
    assert rows["Unknown"]["leads"] == 1
    assert rows["Website"]["conversion_rate"] == 0


def test_client_overview() -> None:
    row = views.client_overview(_clients())
    assert row["total_clients"] == 4
    assert row["converted"] == 2
    assert row["new_clients"] == 2
    assert row["total_ltv"] == 6000
    assert row["avg_converted_ltv"] == pytest.approx(3000.0)
    assert row["avg_conversion_span"] == pytest.approx(15.0)
    assert row["conversion_rate"] == pytest.approx(50.0)
    assert row["retention_rate"] == pytest.approx(25.0)


def test_client_overview_empty_snapshot() -> None:
    row = views.client_overview([])
    assert row["total_clients"] == 0
    assert all(v == 0 for v in row.values())


def test_monthly_client_conversion_is_chronological_and_skips_undated() -> None:
    rows = views.monthly_client_conversion(_clients())
    assert [r["month"] for r in rows] == ["2024-01", "2024-02"]
    assert rows[0]["new_clients"] == 2
    assert rows[0]["conversion_rate"] == pytest.approx(50.0)
    assert rows[1]["conversion_rate"] == pytest.approx(100.0)


def test_client_class_type_falls_back_to_first_visit_type() -> None:
    clients = [*_clients(), ClientRecord(membership_used="Studio 8 Class Pack", first_visit_type="Trial")]
    rows = _by(views.client_class_type_summary(clients), "class_type")
    assert rows["Trial"]["leads"] == 2
    assert rows["Walk-in"]["leads"] == 1
    assert rows["Studio 8 Class Pack"]["leads"] == 1
    assert rows["Unknown"]["leads"] == 1


def test_client_associate_summary() -> None:
    rows = _by(views.client_associate_summary(_clients()), "associate")
    assert rows["Asha"]["conversions"] == 2
    assert rows["Ravi"]["conversions"] == 0


# ---------------- sales ----------------

def test_sales_by_product() -> None:
    rows = _by(views.sales_by_product(_sales()), "product")
    barre = rows["Barre"]
    assert barre["revenue"] == 1500
    assert barre["transactions"] == 2
    assert barre["unique_members"] == 2
    assert barre["vat"] == 270
    assert barre["avg_order_value"] == pytest.approx(750.0)
    assert barre["net_revenue"] == pytest.approx(1230.0)
    assert barre["discount_rate"] == pytest.approx(100 / 1500 * 100)
    assert rows["Cycle"]["discount_rate"] == 0


def test_sales_by_location_sums_to_total() -> None:
    rows = views.sales_by_location(_sales())
    assert sum(r["revenue"] for r in rows) == 3500


def test_monthly_sales_growth() -> None:
    rows = views.monthly_sales(_sales())
    assert [r["month"] for r in rows] == ["2024-01", "2024-02"]
    assert rows[1]["difference"] == 500
    assert rows[1]["growth_rate"] == pytest.approx(500 / 1500 * 100)


def test_yearly_sales_and_year_on_year() -> None:
    sales = [
        *_sales(),
        TransactionRecord(member_id="m3", payment_date="10/06/2023", payment_value=1000, product="Barre"),
    ]
    yearly = views.yearly_sales(sales)
    assert [r["year"] for r in yearly] == ["2024", "2023"]
    latest = yearly[0]
    assert latest["transactions"] == 3
    assert latest["members"] == 2
    assert latest["units"] == 3
    assert latest["atv"] == pytest.approx(3500 / 3)
    assert latest["upt"] == pytest.approx(1.0)
    assert latest["asv"] == pytest.approx(1750.0)

    (row,) = views.sales_year_on_year(sales, "revenue")
    assert row["year"] == "2024"
    assert row["difference"] == 2500
    assert row["growth_rate"] == pytest.approx(250.0)


def test_rows_without_member_or_date_are_not_a_basket() -> None:
    rows = [
        TransactionRecord(payment_value=100),
        TransactionRecord(payment_value=20),
        TransactionRecord(member_id="m1", payment_date="01/01/2024", payment_value=50),
    ]
    row = aggregate(rows, views.SALES_YEAR)
    assert row["transactions"] == 1
    assert row["units"] == 3


def test_sales_year_on_year_rejects_unknown_metric() -> None:
    with pytest.raises(ValueError):
        views.sales_year_on_year(_sales(), "profit")


def test_sales_year_on_year_single_year_is_empty() -> None:
    assert views.sales_year_on_year(_sales()) == []


def test_discount_summary_uses_discounted_rows_only() -> None:
    summary = views.discount_summary(_sales())
    assert summary["total_transactions"] == 1
    assert summary["total_discount_amount"] == 100
    assert summary["total_potential_revenue"] == 600
    assert summary["discount_effectiveness"] == pytest.approx(500 / 600 * 100)
    assert summary["revenue_impact_rate"] == pytest.approx(100 / 600 * 100)
    assert [p["product"] for p in summary["product_breakdown"]] == ["Barre"]
    assert [m["month"] for m in summary["monthly_breakdown"]] == ["2024-01"]


def test_discount_summary_without_discounts() -> None:
    summary = views.discount_summary([TransactionRecord(payment_value=100)])
    assert summary["total_transactions"] == 0
    assert summary["discount_effectiveness"] == 0
    assert summary["product_breakdown"] == []


# ---------------- trainers ----------------

def test_trainer_overview() -> None:
    row = views.trainer_overview(_payroll())
    assert row["total_sessions"] == 30
    assert row["total_revenue"] == 9000
    assert row["avg_retention"] == pytest.approx(60.0)
    assert row["avg_conversion"] == pytest.approx(20.0)
    assert row["avg_class_size"] == pytest.approx(180 / 28)
    assert row["revenue_per_session"] == pytest.approx(300.0)
    assert row["utilization_rate"] == pytest.approx(28 / 30 * 100)
    assert row["trainer_count"] == 2
    assert row["top_revenue_trainer"] == "Asha"
    assert row["top_sessions_trainer"] == "Ravi"
    assert row["top_customers_trainer"] == "Ravi"


def test_trainer_overview_empty() -> None:
    row = views.trainer_overview([])
    assert row["utilization_rate"] == 0
    assert row["top_revenue_trainer"] is None


def test_trainer_summary_and_location() -> None:
    rows = _by(views.trainer_summary(_payroll()), "trainer")
    assert rows["Asha"]["class_average_incl_empty"] == pytest.approx(8.0)
    assert rows["Ravi"]["revenue_per_customer"] == pytest.approx(40.0)
    locations = _by(views.trainer_location_summary(_payroll()), "location")
    assert set(locations) == {"Kwality House", "Kemps"}


def test_trainer_month_on_month() -> None:
    rows = views.trainer_month_on_month(list(reversed(_payroll())))
    assert [r["month"] for r in rows] == ["2024-01", "2024-02"]
    assert rows[1]["difference"] == 10
    assert rows[1]["growth_rate"] == pytest.approx(100.0)


# ---------------- sessions / executive ----------------

def test_session_summary_by_class_and_trainer() -> None:
    rows = _by(views.session_summary(_sessions()), "class_name")
    barre = rows["Barre 57"]
    assert barre["sessions"] == 2
    assert barre["empty_sessions"] == 1
    assert barre["fill_rate"] == pytest.approx(37.5)
    assert barre["avg_attendance"] == pytest.approx(7.5)

    by_trainer = _by(views.VIEWS["sessions"]["trainer"](_sessions()), "trainer_name")
    assert by_trainer["Asha"]["fill_rate"] == pytest.approx(25 / 30 * 100)


def test_executive_summary() -> None:
    leads = [LeadRecord() for _ in range(4)]
    row = views.executive_summary(_sales(), _sessions(), leads, _payroll())
    assert row["total_revenue"] == 3500
    assert row["unique_members"] == 2
    assert row["fill_rate"] == pytest.approx(50.0)
    assert row["conversion_rate"] == pytest.approx(50.0)
    assert row["avg_trainer_payout"] == pytest.approx(4500.0)
    assert row["revenue_per_member"] == pytest.approx(1750.0)


def test_executive_summary_sales_only() -> None:
    row = views.executive_summary(_sales())
    assert row["total_leads"] == 0
    assert row["conversion_rate"] == 0
    assert row["fill_rate"] == 0


def test_view_registry() -> None:
    assert "monthly" in views.view_names("sales")
    assert views.VIEWS["sales"]["year_on_year"] is views.sales_year_on_year
    assert views.view_names("sessions") == ["class", "location", "trainer"]
    assert views.view_names("inventory") is None
