from __future__ import annotations

from datetime import date

from studio_analytics.clean.filters import (
    ClientFilters,
    DateRange,
    LeadFilters,
    PayrollFilters,
    SalesFilters,
    apply_filters,
    filters_from_dict,
)
from studio_analytics.models import ClientRecord, LeadRecord, PayrollRecord, TransactionRecord


def _clients() -> list[ClientRecord]:
    return [
        ClientRecord(member_id="c1", first_visit_date="05/01/2024", trainer_name="Asha", ltv=5000,
                     first_visit_location="Kwality House"),
        ClientRecord(member_id="c2", first_visit_date="20/01/2024", trainer_name="Ravi", ltv=0,
                     first_visit_location="Kemps"),
        ClientRecord(member_id="c3", first_visit_date="12/02/2024", trainer_name="Asha", ltv=1000,
                     first_visit_location="Kwality House"),
        ClientRecord(member_id="c4", first_visit_date="", trainer_name="Asha", ltv=900),
    ]


def _ids(records) -> list[str]:
    return [r.member_id for r in records]


def test_date_range_is_inclusive_and_excludes_missing_dates() -> None:
    f = ClientFilters(date_range=DateRange(start=date(2024, 1, 5), end=date(2024, 1, 20)))
    assert _ids(apply_filters(_clients(), f)) == ["c1", "c2"]


def test_open_ended_date_range() -> None:
    f = ClientFilters(date_range=DateRange(start=date(2024, 2, 1)))
    assert _ids(apply_filters(_clients(), f)) == ["c3"]


def test_filters_combine_with_and() -> None:
    f = ClientFilters(trainer=["Asha"], min_ltv=950)
    assert _ids(apply_filters(_clients(), f)) == ["c1", "c3"]
    f = ClientFilters(trainer=["Asha"], location=["Kemps"])
    assert apply_filters(_clients(), f) == []


def test_empty_filters_keep_everything_in_a_new_list() -> None:
    clients = _clients()
    out = apply_filters(clients, ClientFilters())
    assert out == clients
    assert out is not clients
    assert apply_filters(clients, None) == clients


def test_sales_filters() -> None:
    sales = [
        TransactionRecord(member_id="a", payment_date="01/03/2024", location="Kemps", payment_value=500),
        TransactionRecord(member_id="b", payment_date="01/03/2024", location="Kemps", payment_value=5000),
        TransactionRecord(member_id="c", payment_date="01/03/2024", location="Kwality House", payment_value=800),
    ]
    f = SalesFilters(location=["Kemps"], max_amount=1000)
    assert _ids(apply_filters(sales, f)) == ["a"]


def test_lead_and_payroll_filters() -> None:
    leads = [LeadRecord(source="Instagram", stage="New"), LeadRecord(source="Website", stage="New")]
    assert len(apply_filters(leads, LeadFilters(source=["Website"]))) == 1

    payroll = [PayrollRecord(teacher_name="Asha", month_year="Jan-2024"), PayrollRecord(teacher_name="Ravi")]
    out = apply_filters(payroll, PayrollFilters(trainer=["Ravi"]))
    assert [p.teacher_name for p in out] == ["Ravi"]


def test_filters_from_dict() -> None:
    f = filters_from_dict(
        SalesFilters,
        {
            "location": "Kemps",
            "product": ["Barre", "", None],
            "date_range": {"start": "01/01/2024", "end": "2024-03-31"},
            "min_amount": "1,000",
            "max_amount": "",
            "bogus": 1,
        },
    )
    assert f.location == ["Kemps"]
    assert f.product == ["Barre"]
    assert f.date_range == DateRange(start=date(2024, 1, 1), end=date(2024, 3, 31))
    assert f.min_amount == 1000.0
    assert f.max_amount is None


def test_filters_from_dict_tolerates_bad_input() -> None:
    f = filters_from_dict(ClientFilters, {"date_range": "last month", "trainer": None})
    assert f.date_range == DateRange()
    assert f.trainer == []
    assert filters_from_dict(LeadFilters, None) == LeadFilters()
