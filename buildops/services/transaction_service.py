"""
Cash transaction service.

Rules:
  - Amounts must be positive.
  - A new payment drawn from the workshop fund waits for settlement from the
    main treasury (status ``pending_settlement``); everything else is
    ``completed`` with today's actual payment date.
  - Project-linked USD receipts accumulate into the project's revenue and
    payments into its expenses. Updates and deletes reverse the old effect
    first. SYP vouchers are a separate petty-cash ledger and never touch the
    project accumulators.

Functions flush, callers commit.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import or_

from buildops.core.exceptions import NotFoundError, ValidationError
from buildops.models import db
from buildops.models.audit import write_audit
from buildops.models.project import Project
from buildops.models.transaction import (
    CURRENCIES,
    MAIN_TREASURY,
    RECIPIENT_TYPES,
    STATUS_COMPLETED,
    STATUS_PENDING_SETTLEMENT,
    TRANSACTION_TYPES,
    TXN_PAYMENT,
    TXN_RECEIPT,
    TXN_TRANSFER,
    WORKSHOP_FUND,
    Transaction,
    next_serial_number,
)
from buildops.utils.helpers import parse_amount, parse_date

logger = logging.getLogger(__name__)

LIST_TABS = {"expenses", "revenues", "transfers"}
EXPENSE_SUB_TABS = {"completed", "pending"}


def get_transaction(txn_id: int) -> Transaction:
    txn = db.session.get(Transaction, txn_id)
    if txn is None:
        raise NotFoundError(resource="Transaction", resource_id=txn_id)
    return txn


def list_transactions(
    *,
    tab: str | None = None,
    sub_tab: str = "completed",
    search: str | None = None,
    currency: str | None = "USD",
    project_id: int | None = None,
) -> dict:
    """List vouchers for one screen tab and total their amounts.

    Tabs: ``expenses`` (payments, split into ``completed`` / ``pending``
    settlement), ``revenues`` (receipts), ``transfers``.
    """
    query = Transaction.query
    if tab:
        if tab not in LIST_TABS:
            raise ValidationError(
                f"Unknown tab: {tab!r}",
                details={"tab": f"must be one of: {', '.join(sorted(LIST_TABS))}"},
            )
        if tab == "expenses":
            if sub_tab not in EXPENSE_SUB_TABS:
                raise ValidationError(
                    f"Unknown expense sub-tab: {sub_tab!r}",
                    details={"sub_tab": f"must be one of: {', '.join(sorted(EXPENSE_SUB_TABS))}"},
                )
            query = query.filter(Transaction.type == TXN_PAYMENT)
            if sub_tab == "pending":
                query = query.filter(Transaction.status == STATUS_PENDING_SETTLEMENT)
            else:
                query = query.filter(Transaction.status == STATUS_COMPLETED)
        elif tab == "revenues":
            query = query.filter(Transaction.type == TXN_RECEIPT)
        else:
            query = query.filter(Transaction.type == TXN_TRANSFER)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Transaction.description.ilike(like),
            Transaction.from_account.ilike(like),
            Transaction.to_account.ilike(like),
        ))
    if currency:
        query = query.filter(Transaction.currency == currency)
    if project_id is not None:
        query = query.filter(Transaction.project_id == project_id)

    rows = query.order_by(Transaction.date.desc(), Transaction.id.desc()).all()
    return {
        "transactions": rows,
        "total": round(sum(t.amount for t in rows), 2),
        "count": len(rows),
    }


def pending_settlement_count() -> int:
    return Transaction.query.filter(
        Transaction.type == TXN_PAYMENT,
        Transaction.status == STATUS_PENDING_SETTLEMENT,
    ).count()


# ── Project accumulators ─────────────────────────────────────────────────────


def _apply_to_project(txn: Transaction, sign: int) -> None:
    """Add (sign=1) or remove (sign=-1) a voucher's effect on its project."""
    if txn.project_id is None or txn.currency != "USD":
        return
    if txn.type not in (TXN_RECEIPT, TXN_PAYMENT):
        return
    project = db.session.get(Project, txn.project_id)
    if project is None:
        return
    if txn.type == TXN_RECEIPT:
        project.revenue = round((project.revenue or 0.0) + sign * txn.amount, 2)
    else:
        project.expenses = round((project.expenses or 0.0) + sign * txn.amount, 2)


# ── Validation ───────────────────────────────────────────────────────────────


def _validated_fields(data: dict, *, partial: bool) -> dict:
    errors: dict[str, str] = {}
    fields: dict = {}

    if not partial or "amount" in data:
        try:
            amount = parse_amount(data.get("amount"))
        except ValueError as exc:
            errors["amount"] = str(exc)
        else:
            if amount <= 0:
                errors["amount"] = "A transaction cannot be recorded with a zero amount"
            else:
                fields["amount"] = round(amount, 2)

    if not partial or "type" in data:
        txn_type = str(data.get("type") or TXN_PAYMENT).strip()
        if txn_type not in TRANSACTION_TYPES:
            errors["type"] = f"must be one of: {', '.join(sorted(TRANSACTION_TYPES))}"
        else:
            fields["type"] = txn_type

    if not partial or "currency" in data:
        currency = str(data.get("currency") or "USD").strip().upper()
        if currency not in CURRENCIES:
            errors["currency"] = f"must be one of: {', '.join(sorted(CURRENCIES))}"
        else:
            fields["currency"] = currency

    if "recipient_type" in data and data.get("recipient_type"):
        recipient_type = str(data["recipient_type"]).strip().lower()
        if recipient_type not in RECIPIENT_TYPES:
            errors["recipient_type"] = f"must be one of: {', '.join(sorted(RECIPIENT_TYPES))}"
        else:
            fields["recipient_type"] = recipient_type

    if "project_id" in data:
        raw = data.get("project_id")
        if raw in (None, "", "General"):
            fields["project_id"] = None
        else:
            try:
                project_id = int(raw)
            except (TypeError, ValueError):
                project_id = None
            if project_id is None or db.session.get(Project, project_id) is None:
                errors["project_id"] = f"Project {raw} does not exist"
            else:
                fields["project_id"] = project_id

    if not partial or "date" in data:
        fields["date"] = parse_date(data.get("date")) or date.today()
    if not partial or "from_account" in data:
        fields["from_account"] = str(data.get("from_account") or MAIN_TREASURY).strip()
    if "to_account" in data or "recipient_name" in data or not partial:
        recipient_name = str(data.get("recipient_name") or "").strip() or None
        to_account = str(data.get("to_account") or "").strip()
        fields["recipient_name"] = recipient_name or to_account or None
        fields["to_account"] = to_account or recipient_name or "Expenses"
    if "description" in data or not partial:
        fields["description"] = str(data.get("description") or "").strip()

    if errors:
        raise ValidationError("Transaction cannot be saved", details=errors)
    return fields


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_transaction(data: dict, *, actor: str = "system") -> Transaction:
    fields = _validated_fields(data, partial=False)

    if fields["type"] == TXN_PAYMENT and fields["from_account"] == WORKSHOP_FUND:
        status = STATUS_PENDING_SETTLEMENT
    else:
        status = STATUS_COMPLETED

    txn = Transaction(
        serial_number=next_serial_number(fields["type"]),
        status=status,
        actual_payment_date=date.today() if status == STATUS_COMPLETED else None,
        **fields,
    )
    db.session.add(txn)
    db.session.flush()
    _apply_to_project(txn, 1)
    db.session.flush()

    write_audit(
        entity_type="transaction", entity_id=txn.id, action="create", actor=actor,
        project_id=txn.project_id,
        description=f"Recorded {txn.type} #{txn.serial_number} of {txn.amount:.2f} {txn.currency}",
    )
    if status == STATUS_PENDING_SETTLEMENT:
        logger.info("Workshop payment %s recorded, pending settlement from %s",
                    txn.id, MAIN_TREASURY, extra={"project_id": txn.project_id})
    return txn


def update_transaction(txn_id: int, data: dict, *, actor: str = "system") -> Transaction:
    txn = get_transaction(txn_id)
    fields = _validated_fields(data, partial=True)
    if "status" in data and data["status"] != txn.status:
        raise ValidationError(
            "Use the settle endpoint to complete a pending payment",
            details={"status": "read-only"},
        )

    before = txn.to_dict()
    # Computed before the type changes, or autoflush counts this row
    new_serial = None
    if "type" in fields and fields["type"] != txn.type:
        new_serial = next_serial_number(fields["type"])

    _apply_to_project(txn, -1)
    for key, value in fields.items():
        setattr(txn, key, value)
    if new_serial is not None:
        txn.serial_number = new_serial
    _apply_to_project(txn, 1)
    db.session.flush()

    after = txn.to_dict()
    write_audit(
        entity_type="transaction", entity_id=txn.id, action="update", actor=actor,
        project_id=txn.project_id,
        description=f"Updated {txn.type} #{txn.serial_number}",
        diff={k: {"old": before[k], "new": after[k]} for k in after if before[k] != after[k]},
    )
    return txn


def delete_transaction(txn_id: int, *, actor: str = "system") -> None:
    txn = get_transaction(txn_id)
    _apply_to_project(txn, -1)
    label = f"{txn.type} #{txn.serial_number}"
    project_id = txn.project_id
    db.session.delete(txn)
    db.session.flush()
    write_audit(
        entity_type="transaction", entity_id=txn_id, action="delete", actor=actor,
        project_id=project_id, description=f"Deleted {label}",
    )


def settle_transaction(
    txn_id: int,
    *,
    settle_date=None,
    from_account: str | None = None,
    actor: str = "system",
) -> Transaction:
    """Reimburse a pending workshop payment from the treasury."""
    txn = get_transaction(txn_id)
    if txn.status != STATUS_PENDING_SETTLEMENT:
        raise ValidationError(
            f"Transaction {txn.id} is not pending settlement",
            details={"status": txn.status},
        )

    paid_on = parse_date(settle_date) or date.today()
    txn.status = STATUS_COMPLETED
    txn.actual_payment_date = paid_on
    db.session.flush()

    write_audit(
        entity_type="transaction", entity_id=txn.id, action="transaction.settle", actor=actor,
        project_id=txn.project_id,
        description=f"Settled payment #{txn.serial_number} from {from_account or MAIN_TREASURY}",
        diff={
            "status": {"old": STATUS_PENDING_SETTLEMENT, "new": STATUS_COMPLETED},
            "actual_payment_date": paid_on.isoformat(),
            "from_account": from_account or MAIN_TREASURY,
        },
    )
    logger.info("Transaction %s settled on %s", txn.id, paid_on.isoformat(),
                extra={"project_id": txn.project_id, "event_type": "transaction.settle"})
    return txn
