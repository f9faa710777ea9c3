"""Invoice service: listing by kind, validated create/update, status changes.

Validation collects every missing field before failing so the client can
show all problems at once. Functions flush, callers commit.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import or_

from buildops.core.exceptions import ConflictError, NotFoundError, ValidationError
from buildops.models import db
from buildops.models.audit import write_audit
from buildops.models.invoice import (
    INVOICE_KINDS,
    INVOICE_PURCHASE,
    INVOICE_STATUSES,
    INVOICE_TYPES,
    Invoice,
    InvoiceItem,
)
from buildops.models.project import Project
from buildops.utils.helpers import parse_amount, parse_date

logger = logging.getLogger(__name__)


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError(resource="Invoice", resource_id=invoice_id)
    return invoice


def list_invoices(
    *,
    kind: str | None = None,
    search: str | None = None,
    status: str | None = None,
    project_id: int | None = None,
) -> list[Invoice]:
    """List invoices, newest first.

    ``kind`` is ``sales`` (sales invoices) or ``purchases`` (purchase and
    supplier invoices). The two kinds partition the invoice table.
    """
    query = Invoice.query
    if kind:
        types = INVOICE_KINDS.get(kind)
        if types is None:
            raise ValidationError(
                f"Unknown invoice kind: {kind!r}",
                details={"kind": f"must be one of: {', '.join(sorted(INVOICE_KINDS))}"},
            )
        query = query.filter(Invoice.type.in_(types))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Invoice.invoice_number.ilike(like),
            Invoice.counterparty.ilike(like),
            Invoice.category.ilike(like),
        ))
    if status:
        query = query.filter(Invoice.status == status)
    if project_id is not None:
        query = query.filter(Invoice.project_id == project_id)
    return query.order_by(Invoice.date.desc(), Invoice.id.desc()).all()


def next_invoice_number(on: date | None = None) -> str:
    """Generate the next ``INV-<year>-<seq>`` number."""
    year = (on or date.today()).year
    prefix = f"INV-{year}-"
    count = Invoice.query.filter(Invoice.invoice_number.like(f"{prefix}%")).count()
    seq = count + 1
    while Invoice.query.filter_by(invoice_number=f"{prefix}{seq:03d}").first():
        seq += 1
    return f"{prefix}{seq:03d}"


def _parse_items(raw_items, errors: dict) -> list[dict]:
    items = []
    for idx, raw in enumerate(raw_items or []):
        if not isinstance(raw, dict):
            errors[f"items[{idx}]"] = "item must be an object"
            continue
        try:
            quantity = parse_amount(raw.get("quantity"), default=1.0)
            unit_price = parse_amount(raw.get("unit_price"))
        except ValueError as exc:
            errors[f"items[{idx}]"] = str(exc)
            continue
        items.append({
            "description": str(raw.get("description", "") or "").strip(),
            "unit": str(raw.get("unit", "") or "unit").strip(),
            "quantity": quantity,
            "unit_price": unit_price,
            "total": round(quantity * unit_price, 2),
        })
    return items


def _validated_fields(data: dict, *, partial: bool, invoice: Invoice | None = None) -> dict:
    """Return the normalized invoice fields or raise ValidationError."""
    errors: dict[str, str] = {}
    fields: dict = {}

    if not partial or "project_id" in data:
        try:
            project_id = int(data.get("project_id") or 0)
        except (TypeError, ValueError):
            project_id = 0
        if not project_id:
            errors["project_id"] = "Select the project this invoice belongs to"
        elif db.session.get(Project, project_id) is None:
            errors["project_id"] = f"Project {project_id} does not exist"
        else:
            fields["project_id"] = project_id

    if not partial or "counterparty" in data:
        counterparty = str(data.get("counterparty", "") or "").strip()
        if not counterparty:
            errors["counterparty"] = "Enter the supplier or client name"
        else:
            fields["counterparty"] = counterparty

    if "type" in data or not partial:
        inv_type = str(data.get("type") or INVOICE_PURCHASE).strip()
        if inv_type not in INVOICE_TYPES:
            errors["type"] = f"must be one of: {', '.join(sorted(INVOICE_TYPES))}"
        else:
            fields["type"] = inv_type

    if "status" in data:
        status = str(data.get("status") or "").strip()
        if status not in INVOICE_STATUSES:
            errors["status"] = f"must be one of: {', '.join(sorted(INVOICE_STATUSES))}"
        else:
            fields["status"] = status

    for key in ("category", "related_employee"):
        if key in data:
            fields[key] = (str(data.get(key) or "").strip() or None)
    if "date" in data or not partial:
        fields["date"] = parse_date(data.get("date")) or date.today()
    if data.get("invoice_number"):
        fields["invoice_number"] = str(data["invoice_number"]).strip()

    # Subtotal from line items when present, else the flat amount; discount applies to both
    pricing_touched = not partial or any(k in data for k in ("items", "amount", "discount"))
    if pricing_touched:
        try:
            discount = parse_amount(
                data.get("discount"),
                default=invoice.discount if invoice is not None else 0.0,
            )
        except ValueError as exc:
            errors["discount"] = str(exc)
            discount = 0.0
        if discount < 0:
            errors["discount"] = "discount cannot be negative"

        if "items" in data:
            items = _parse_items(data.get("items"), errors)
        elif invoice is not None:
            items = [item.to_dict() for item in invoice.items]
        else:
            items = []

        if items:
            subtotal = round(sum(item["total"] for item in items), 2)
        else:
            # Flat amount; partial updates keep the stored one unless resent
            try:
                subtotal = parse_amount(
                    data.get("amount"),
                    default=invoice.subtotal if partial and invoice is not None else 0.0,
                )
            except ValueError as exc:
                errors["amount"] = str(exc)
                subtotal = 0.0
            if subtotal <= 0 and "amount" not in errors:
                errors["items"] = "Add at least one line item or a positive amount"
        amount = round(max(0.0, subtotal - discount), 2)

        fields.update(items=items, subtotal=subtotal, discount=discount, amount=amount)

    if errors:
        raise ValidationError("Invoice cannot be saved", details=errors)
    return fields


def _apply(invoice: Invoice, fields: dict) -> None:
    items = fields.pop("items", None)
    for key, value in fields.items():
        setattr(invoice, key, value)
    if items is not None:
        invoice.items = [
            InvoiceItem(
                description=item["description"],
                unit=item["unit"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                total=item["total"],
            )
            for item in items
        ]


def _ensure_unique_number(number: str, invoice_id: int | None = None) -> None:
    query = Invoice.query.filter(Invoice.invoice_number == number)
    if invoice_id is not None:
        query = query.filter(Invoice.id != invoice_id)
    if query.first():
        raise ConflictError("Invoice", "invoice_number", number)


def create_invoice(data: dict, *, actor: str = "system") -> Invoice:
    fields = _validated_fields(data, partial=False)
    fields.setdefault("invoice_number", next_invoice_number(fields["date"]))
    _ensure_unique_number(fields["invoice_number"])
    fields.setdefault("status", "pending")

    invoice = Invoice()
    _apply(invoice, fields)
    db.session.add(invoice)
    db.session.flush()

    write_audit(
        entity_type="invoice", entity_id=invoice.id, action="create", actor=actor,
        project_id=invoice.project_id,
        description=f"Created invoice {invoice.invoice_number} for {invoice.counterparty}",
    )
    logger.info("Invoice created id=%s number=%s amount=%.2f",
                invoice.id, invoice.invoice_number, invoice.amount,
                extra={"project_id": invoice.project_id})
    return invoice


def update_invoice(invoice_id: int, data: dict, *, actor: str = "system") -> Invoice:
    invoice = get_invoice(invoice_id)
    fields = _validated_fields(data, partial=True, invoice=invoice)
    if "invoice_number" in fields:
        _ensure_unique_number(fields["invoice_number"], invoice.id)

    before = invoice.to_dict(include_items=False)
    _apply(invoice, fields)
    db.session.flush()
    after = invoice.to_dict(include_items=False)

    write_audit(
        entity_type="invoice", entity_id=invoice.id, action="update", actor=actor,
        project_id=invoice.project_id,
        description=f"Updated invoice {invoice.invoice_number}",
        diff={k: {"old": before[k], "new": after[k]} for k in after if before[k] != after[k]},
    )
    return invoice


def set_invoice_status(invoice_id: int, status: str, *, actor: str = "system") -> Invoice:
    if status not in INVOICE_STATUSES:
        raise ValidationError(
            f"Unknown invoice status: {status!r}",
            details={"status": f"must be one of: {', '.join(sorted(INVOICE_STATUSES))}"},
        )
    invoice = get_invoice(invoice_id)
    old = invoice.status
    invoice.status = status
    db.session.flush()
    write_audit(
        entity_type="invoice", entity_id=invoice.id, action="invoice.status", actor=actor,
        project_id=invoice.project_id,
        description=f"Invoice {invoice.invoice_number} marked {status}",
        diff={"status": {"old": old, "new": status}},
    )
    return invoice


def delete_invoice(invoice_id: int, *, actor: str = "system") -> None:
    invoice = get_invoice(invoice_id)
    number, project_id = invoice.invoice_number, invoice.project_id
    db.session.delete(invoice)
    db.session.flush()
    write_audit(
        entity_type="invoice", entity_id=invoice_id, action="delete", actor=actor,
        project_id=project_id, description=f"Deleted invoice {number}",
    )
