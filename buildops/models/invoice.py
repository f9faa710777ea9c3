"""
BuildOps Dashboard
Invoice domain models.

Models:
    - Invoice:     sales invoice to a client, or purchase/supplier invoice
    - InvoiceItem: priced line on an invoice
"""

from datetime import datetime, timezone

from buildops.models import db


# ── Constants ────────────────────────────────────────────────────────────────

INVOICE_SALES = "sales"
INVOICE_PURCHASE = "purchase"
INVOICE_SUPPLIER = "supplier"

INVOICE_TYPES = {INVOICE_SALES, INVOICE_PURCHASE, INVOICE_SUPPLIER}

# List-view partitions: every invoice type belongs to exactly one kind
INVOICE_KINDS = {
    "sales": {INVOICE_SALES},
    "purchases": {INVOICE_PURCHASE, INVOICE_SUPPLIER},
}

INVOICE_STATUSES = {"pending", "paid", "overdue"}


class Invoice(db.Model):
    __tablename__ = "invoices"

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(50), nullable=False, unique=True)
    date = db.Column(db.Date, nullable=False)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type = db.Column(db.String(20), nullable=False, default=INVOICE_PURCHASE, index=True)
    status = db.Column(db.String(20), nullable=False, default="pending")
    counterparty = db.Column(
        db.String(200), nullable=False,
        comment="Client for sales invoices, supplier otherwise",
    )
    category = db.Column(db.String(100), nullable=True)
    related_employee = db.Column(db.String(200), nullable=True)

    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)
    amount = db.Column(db.Float, nullable=False, default=0.0)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    project = db.relationship("Project", backref=db.backref("invoices", lazy="dynamic", passive_deletes=True))
    items = db.relationship(
        "InvoiceItem", backref="invoice", cascade="all, delete-orphan",
        order_by="InvoiceItem.id",
    )

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "date": self.date.isoformat() if self.date else None,
            "project_id": self.project_id,
            "type": self.type,
            "status": self.status,
            "counterparty": self.counterparty,
            "category": self.category,
            "related_employee": self.related_employee,
            "subtotal": self.subtotal,
            "discount": self.discount,
            "amount": self.amount,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data

    def __repr__(self) -> str:
        return f"<Invoice {self.id}: {self.invoice_number} {self.type}>"


class InvoiceItem(db.Model):
    __tablename__ = "invoice_items"

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer,
        db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    description = db.Column(db.String(300), nullable=False, default="")
    unit = db.Column(db.String(30), nullable=False, default="unit")
    quantity = db.Column(db.Float, nullable=False, default=1.0)
    unit_price = db.Column(db.Float, nullable=False, default=0.0)
    total = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "unit": self.unit,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total": self.total,
        }
