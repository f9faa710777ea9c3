"""Service-level tests for cash vouchers and project accumulators."""

from datetime import date

import pytest

from buildops.core.exceptions import NotFoundError, ValidationError
from buildops.models import db
from buildops.models.audit import ActivityLog
from buildops.models.project import Project
from buildops.models.transaction import Transaction, next_serial_number
from buildops.services import transaction_service as svc


@pytest.fixture()
def site(make_project):
    return make_project(name="Warehouses", status="execution", type="execution",
                        budget=850000.0, revenue=1000.0, expenses=500.0)


def _project(project_id) -> Project:
    return db.session.get(Project, project_id)


class TestSerials:

    def test_first_serial_per_type(self):
        assert next_serial_number("receipt") == 1001
        assert next_serial_number("payment") == 5001
        assert next_serial_number("journal") == 7001
        assert next_serial_number("transfer") == 9001

    def test_serials_continue_from_max(self):
        svc.create_transaction({"type": "payment", "amount": 10})
        second = svc.create_transaction({"type": "payment", "amount": 10})
        receipt = svc.create_transaction({"type": "receipt", "amount": 10})
        assert second.serial_number == 5002
        assert receipt.serial_number == 1001


class TestAccumulators:

    def test_receipt_adds_revenue_and_payment_adds_expenses(self, site):
        svc.create_transaction({"type": "receipt", "amount": 2500, "project_id": site.id})
        svc.create_transaction({"type": "payment", "amount": "300.5", "project_id": site.id})
        db.session.commit()

        assert _project(site.id).revenue == 3500.0
        assert _project(site.id).expenses == 800.5

    def test_syp_and_transfers_do_not_touch_project(self, site):
        svc.create_transaction({"type": "payment", "amount": 250000, "currency": "SYP",
                                "project_id": site.id})
        svc.create_transaction({"type": "transfer", "amount": 10000, "project_id": site.id,
                                "to_account": "Workshop Fund"})
        assert _project(site.id).revenue == 1000.0
        assert _project(site.id).expenses == 500.0

    def test_general_expense_has_no_project(self):
        txn = svc.create_transaction({"type": "payment", "amount": 40, "project_id": "General"})
        assert txn.project_id is None

    def test_update_moves_effect_between_projects(self, site, make_project):
        other = make_project(name="Clinic")
        txn = svc.create_transaction({"type": "payment", "amount": 200, "project_id": site.id})
        svc.update_transaction(txn.id, {"project_id": other.id, "amount": 50})
        db.session.commit()

        assert _project(site.id).expenses == 500.0
        assert _project(other.id).expenses == 50.0

    def test_update_type_reassigns_serial_and_effect(self, site):
        txn = svc.create_transaction({"type": "payment", "amount": 100, "project_id": site.id})
        svc.update_transaction(txn.id, {"type": "receipt"})

        assert txn.serial_number == 1001
        assert _project(site.id).expenses == 500.0
        assert _project(site.id).revenue == 1100.0

    def test_delete_reverses_effect(self, site):
        txn = svc.create_transaction({"type": "receipt", "amount": 700, "project_id": site.id})
        svc.delete_transaction(txn.id)
        db.session.commit()

        assert _project(site.id).revenue == 1000.0
        assert Transaction.query.count() == 0
        assert ActivityLog.query.filter_by(entity_type="transaction", action="delete").count() == 1


class TestValidation:

    @pytest.mark.parametrize("amount", [0, "0", None, -5])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_transaction({"type": "payment", "amount": amount})
        assert "amount" in exc_info.value.details
        assert Transaction.query.count() == 0

    def test_zero_amount_message(self):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_transaction({"amount": 0})
        assert exc_info.value.details["amount"] == (
            "A transaction cannot be recorded with a zero amount"
        )

    def test_bad_enums_and_project(self):
        with pytest.raises(ValidationError) as exc_info:
            svc.create_transaction({
                "type": "gift", "amount": 5, "currency": "EUR",
                "recipient_type": "alien", "project_id": 99,
            })
        assert set(exc_info.value.details) == {"type", "currency", "recipient_type", "project_id"}

    def test_status_is_read_only_on_update(self):
        txn = svc.create_transaction({"type": "payment", "amount": 5,
                                      "from_account": "Workshop Fund"})
        with pytest.raises(ValidationError):
            svc.update_transaction(txn.id, {"status": "completed"})

    def test_defaults(self):
        txn = svc.create_transaction({"amount": 12, "recipient_name": "Abu Mohammad"})
        assert txn.type == "payment"
        assert txn.currency == "USD"
        assert txn.from_account == "Main Treasury"
        assert txn.to_account == "Abu Mohammad"
        assert txn.date == date.today()


class TestWorkshopSettlement:

    def test_workshop_payment_waits_for_settlement(self, site):
        txn = svc.create_transaction({"type": "payment", "amount": 1200,
                                      "from_account": "Workshop Fund", "project_id": site.id})
        assert txn.status == "pending_settlement"
        assert txn.actual_payment_date is None
        assert svc.pending_settlement_count() == 1

    def test_treasury_payment_completes_immediately(self):
        txn = svc.create_transaction({"type": "payment", "amount": 1200})
        assert txn.status == "completed"
        assert txn.actual_payment_date == date.today()
        assert svc.pending_settlement_count() == 0

    def test_settle_pending_payment(self, site):
        txn = svc.create_transaction({"type": "payment", "amount": 1200,
                                      "from_account": "Workshop Fund", "project_id": site.id})
        svc.settle_transaction(txn.id, settle_date="2024-06-01", actor="treasurer")
        db.session.commit()

        assert txn.status == "completed"
        assert txn.actual_payment_date == date(2024, 6, 1)
        assert svc.pending_settlement_count() == 0
        log = ActivityLog.query.filter_by(action="transaction.settle").one()
        assert log.actor == "treasurer"
        assert log.diff["from_account"] == "Main Treasury"

    def test_settling_completed_payment_fails(self):
        txn = svc.create_transaction({"type": "payment", "amount": 10})
        with pytest.raises(ValidationError):
            svc.settle_transaction(txn.id)

    def test_settle_unknown(self):
        with pytest.raises(NotFoundError):
            svc.settle_transaction(42)


class TestListTransactions:

    @pytest.fixture()
    def vouchers(self, site):
        svc.create_transaction({"type": "receipt", "amount": 150000, "project_id": site.id,
                                "description": "Tower installment", "date": "2024-05-01"})
        svc.create_transaction({"type": "payment", "amount": 50000, "project_id": site.id,
                                "description": "Steel purchase", "date": "2024-05-05"})
        svc.create_transaction({"type": "payment", "amount": 1200, "from_account": "Workshop Fund",
                                "description": "Site tools", "date": "2024-05-24"})
        svc.create_transaction({"type": "transfer", "amount": 10000, "to_account": "Workshop Fund",
                                "date": "2024-05-25"})
        svc.create_transaction({"type": "payment", "amount": 250000, "currency": "SYP",
                                "description": "Office hospitality", "date": "2024-05-01"})
        db.session.commit()

    def test_tabs(self, vouchers):
        completed = svc.list_transactions(tab="expenses")
        assert [t.description for t in completed["transactions"]] == ["Steel purchase"]
        assert completed["total"] == 50000.0

        pending = svc.list_transactions(tab="expenses", sub_tab="pending")
        assert [t.description for t in pending["transactions"]] == ["Site tools"]

        assert svc.list_transactions(tab="revenues")["total"] == 150000.0
        assert svc.list_transactions(tab="transfers")["count"] == 1

    def test_currency_and_search(self, vouchers):
        syp = svc.list_transactions(tab="expenses", currency="SYP")
        assert syp["total"] == 250000.0
        found = svc.list_transactions(search="workshop")
        assert {t.type for t in found["transactions"]} == {"payment", "transfer"}

    def test_newest_first(self, vouchers):
        dates = [t.date for t in svc.list_transactions()["transactions"]]
        assert dates == sorted(dates, reverse=True)

    def test_unknown_tab(self, vouchers):
        with pytest.raises(ValidationError):
            svc.list_transactions(tab="salaries")
        with pytest.raises(ValidationError):
            svc.list_transactions(tab="expenses", sub_tab="archived")
