"""Tests for project financials, the merged ledger and dashboard KPIs."""

from datetime import date

import pytest

from buildops.core.exceptions import NotFoundError
from buildops.models import db
from buildops.models.invoice import Invoice
from buildops.models.transaction import Transaction
from buildops.services import finance_service as svc
from buildops.services.project_lifecycle import transition_project
from buildops.utils.helpers import format_currency


def _txn(project_id, txn_type, amount, *, currency="USD", recipient_type=None, day=1):
    db.session.add(Transaction(
        type=txn_type, amount=amount, currency=currency, project_id=project_id,
        recipient_type=recipient_type, date=date(2024, 5, day),
    ))


def test_lump_sum_position(make_project):
    project = make_project(status="execution", type="execution", contract_type="lump_sum",
                           budget=5000000.0, agreed_labor_budget=500000.0)
    _txn(project.id, "receipt", 1500000.0)
    _txn(project.id, "payment", 50000.0, recipient_type="supplier")
    _txn(project.id, "payment", 15000.0, recipient_type="craftsman")
    _txn(project.id, "payment", 999.0, currency="SYP")
    db.session.commit()

    fin = svc.project_financials(project.id)
    assert fin["total_received"] == 1500000.0
    assert fin["total_expenses"] == 65000.0
    assert fin["labor_cost"] == 15000.0
    assert fin["company_share"] == 1435000.0
    assert fin["remaining_payments"] == 3500000.0
    assert fin["financial_progress"] == 1
    assert fin["display"]["contract_value"] == "$5,000,000"


def test_percentage_position(make_project):
    project = make_project(status="execution", type="execution", contract_type="percentage",
                           company_percentage=15.0, budget=100000.0)
    _txn(project.id, "payment", 20000.0)
    _txn(project.id, "receipt", 10000.0)
    db.session.commit()

    fin = svc.project_financials(project.id)
    assert fin["company_share"] == 3000.0
    assert fin["remaining_payments"] == 13000.0
    assert fin["financial_progress"] == 20


def test_design_position_is_budget_minus_received(design_project):
    _txn(design_project.id, "receipt", 25000.0)
    db.session.commit()

    fin = svc.project_financials(design_project.id)
    assert fin["remaining_payments"] == 125000.0
    assert fin["company_share"] == 0.0
    assert fin["design_debt"] == 100000.0
    assert fin["workshop_fund_low"] is False


def test_financial_progress_capped(make_project):
    project = make_project(status="execution", type="execution", budget=1000.0)
    _txn(project.id, "payment", 5000.0)
    db.session.commit()
    assert svc.project_financials(project.id)["financial_progress"] == 100


def test_workshop_fund_low(make_project):
    low = make_project(status="execution", type="execution",
                       workshop_balance=5000.0, workshop_threshold=5000.0)
    healthy = make_project(status="execution", type="execution",
                           workshop_balance=15000.0, workshop_threshold=5000.0)
    assert svc.project_financials(low.id)["workshop_fund_low"] is True
    assert svc.project_financials(healthy.id)["workshop_fund_low"] is False


def test_financials_link_successor(design_project):
    result = transition_project(design_project.id, "execution")
    db.session.commit()

    fin = svc.project_financials(design_project.id)
    assert fin["successor_project_id"] == result["execution_project"]["id"]
    succ = svc.project_financials(result["execution_project"]["id"])
    assert succ["related_project_id"] == design_project.id


def test_ledger_merges_and_sorts(make_project):
    project = make_project()
    _txn(project.id, "receipt", 100.0, day=3)
    _txn(project.id, "payment", 50.0, day=1)
    _txn(project.id, "transfer", 10.0, day=4)
    _txn(project.id, "journal", 5.0, day=5)
    db.session.add(Invoice(invoice_number="INV-2024-001", project_id=project.id,
                           counterparty="Supplier", date=date(2024, 5, 2),
                           amount=70.0, subtotal=70.0))
    db.session.commit()

    rows = svc.project_ledger(project.id)
    assert [r["row_type"] for r in rows] == ["journal", "transfer", "receipt", "invoice", "payment"]
    assert "items" not in rows[3]


def test_unknown_project():
    with pytest.raises(NotFoundError):
        svc.project_financials(5)


def test_dashboard_stats(make_project):
    make_project(status="execution", type="execution", revenue=1500000.0, expenses=800000.0)
    make_project(status="design", revenue=50000.0, expenses=10000.0)
    make_project(status="proposed")

    stats = svc.dashboard_stats()
    assert stats["total_revenue"] == 1550000.0
    assert stats["total_expenses"] == 810000.0
    assert stats["net_profit"] == 740000.0
    assert stats["active_projects"] == 2
    assert stats["cash_flow_status"] == "positive"


def test_dashboard_empty_store_is_neutral():
    stats = svc.dashboard_stats()
    assert stats["net_profit"] == 0
    assert stats["active_projects"] == 0
    assert stats["cash_flow_status"] == "neutral"


@pytest.mark.parametrize(("amount", "currency", "expected"), [
    (1500000, "USD", "$1,500,000"),
    (0, "USD", "$0"),
    (-2500.4, "USD", "-$2,500"),
    (250000, "SYP", "250,000 SYP"),
    (None, "USD", "$0"),
])
def test_format_currency(amount, currency, expected):
    assert format_currency(amount, currency) == expected
