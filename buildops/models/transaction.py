"""
BuildOps Dashboard
Cash transaction model (vouchers).

Payments drawn from the workshop fund are recorded as
``pending_settlement`` until the main treasury reimburses them.
"""

from datetime import datetime, timezone

from buildops.models import db


# ── Constants ────────────────────────────────────────────────────────────────

TXN_RECEIPT = "receipt"
TXN_PAYMENT = "payment"
TXN_TRANSFER = "transfer"
TXN_JOURNAL = "journal"

TRANSACTION_TYPES = {TXN_RECEIPT, TXN_PAYMENT, TXN_TRANSFER, TXN_JOURNAL}

# Serial numbering: receipts 1001+, payments 5001+, journal 7001+, transfers 9001+
SERIAL_BASES = {
    TXN_RECEIPT: 1000,
    TXN_PAYMENT: 5000,
    TXN_JOURNAL: 7000,
    TXN_TRANSFER: 9000,
}

CURRENCIES = {"USD", "SYP"}

STATUS_COMPLETED = "completed"
STATUS_PENDING_SETTLEMENT = "pending_settlement"

TRANSACTION_STATUSES = {STATUS_COMPLETED, STATUS_PENDING_SETTLEMENT}

RECIPIENT_TYPES = {"staff", "craftsman", "worker", "client", "supplier", "other"}
LABOR_RECIPIENT_TYPES = {"craftsman", "worker"}

MAIN_TREASURY = "Main Treasury"
WORKSHOP_FUND = "Workshop Fund"


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    serial_number = db.Column(db.Integer, nullable=True, index=True)
    type = db.Column(db.String(20), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="USD")
    description = db.Column(db.Text, nullable=False, default="")
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    from_account = db.Column(db.String(200), nullable=False, default=MAIN_TREASURY)
    to_account = db.Column(db.String(200), nullable=False, default="Expenses")
    recipient_type = db.Column(db.String(20), nullable=True, comment="staff | craftsman | worker | ...")
    recipient_name = db.Column(db.String(200), nullable=True)

    status = db.Column(db.String(30), nullable=False, default=STATUS_COMPLETED)
    actual_payment_date = db.Column(
        db.Date, nullable=True,
        comment="Date the money actually left the main treasury",
    )

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", backref=db.backref("transactions", lazy="dynamic", passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "serial_number": self.serial_number,
            "type": self.type,
            "date": self.date.isoformat() if self.date else None,
            "amount": self.amount,
            "currency": self.currency,
            "description": self.description,
            "project_id": self.project_id,
            "from_account": self.from_account,
            "to_account": self.to_account,
            "recipient_type": self.recipient_type,
            "recipient_name": self.recipient_name,
            "status": self.status,
            "actual_payment_date": (
                self.actual_payment_date.isoformat() if self.actual_payment_date else None
            ),
        }

    def __repr__(self) -> str:
        return f"<Transaction {self.id}: {self.type} {self.amount} {self.currency}>"


def next_serial_number(txn_type: str) -> int:
    """Next voucher serial for a transaction type."""
    base = SERIAL_BASES.get(txn_type, 0)
    current = (
        db.session.query(db.func.max(Transaction.serial_number))
        .filter(Transaction.type == txn_type)
        .scalar()
    )
    return max(current or base, base) + 1
