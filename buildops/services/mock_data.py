"""
Canned demo data for the in-memory store.

``fetch_recent_invoices`` stands in for the remote invoice feed; the
``seed_mock_data`` loader fills an empty database at start-up (or through
``flask seed-mock-data``).
"""

import copy
import logging
from datetime import date

from buildops.models import db
from buildops.models.client import Client
from buildops.models.invoice import Invoice, InvoiceItem
from buildops.models.project import Project
from buildops.models.transaction import Transaction

logger = logging.getLogger(__name__)


MOCK_CLIENTS = [
    {"key": "c1", "name": "Horizon Real Estate", "company_name": "Horizon Group",
     "phone": "0501234567", "email": "contact@horizon.example", "join_date": "2023-01-10"},
    {"key": "c2", "name": "Dr. Khalid Al-Otaibi", "company_name": "Al-Shifa Clinic",
     "phone": "0509876543", "email": "dr.khalid@clinic.example", "join_date": "2023-02-15"},
    {"key": "c3", "name": "Sara Al-Ahmad", "company_name": "",
     "phone": "0555551111", "email": "sara@mail.example", "join_date": "2023-03-20"},
    {"key": "c4", "name": "Al-Rajhi Contracting", "company_name": "Al-Rajhi",
     "phone": "0544443333", "email": "projects@alrajhi.example", "join_date": "2023-04-05"},
]

MOCK_PROJECTS = [
    {"key": "101", "name": "Horizon Residential Tower", "client": "c1",
     "location": "Riyadh - Olaya", "status": "execution", "type": "execution",
     "budget": 5000000, "progress": 35, "start_date": "2023-06-01",
     "revenue": 1500000, "expenses": 800000,
     "workshop_balance": 15000, "workshop_threshold": 20000,
     "contract_type": "lump_sum", "agreed_labor_budget": 500000},
    {"key": "102", "name": "Clinic Interior Design", "client": "c2",
     "location": "Jeddah - Tahlia", "status": "design", "type": "design",
     "budget": 150000, "progress": 80, "start_date": "2024-01-10",
     "revenue": 50000, "expenses": 10000,
     "contract_type": "percentage", "company_percentage": 15},
    {"key": "103", "name": "Sara's Modern Villa", "client": "c3",
     "location": "Riyadh - Narjis", "status": "proposed", "type": "execution",
     "budget": 2200000, "progress": 0, "start_date": "2024-06-01",
     "revenue": 0, "expenses": 0},
    {"key": "104", "name": "Al-Rajhi Warehouses", "client": "c4",
     "location": "Dammam - Industrial", "status": "execution", "type": "execution",
     "budget": 850000, "progress": 60, "start_date": "2023-09-01",
     "revenue": 400000, "expenses": 300000,
     "workshop_balance": 5000, "workshop_threshold": 5000},
]

MOCK_INVOICES = [
    {"invoice_number": "INV-2024-001", "date": "2024-05-01", "project": "101",
     "counterparty": "Yamama Steel Factory", "status": "paid", "type": "purchase",
     "category": "Building materials", "discount": 0,
     "items": [{"description": "Rebar 12mm", "unit": "ton", "quantity": 10, "unit_price": 3000}]},
    {"invoice_number": "INV-2024-002", "date": "2024-05-03", "project": "101",
     "counterparty": "Horizon Real Estate", "status": "pending", "type": "sales",
     "category": "Progress billing", "discount": 0,
     "items": [{"description": "Stage 2 structure works", "unit": "lot", "quantity": 1,
                "unit_price": 250000}]},
    {"invoice_number": "INV-2024-003", "date": "2024-05-09", "project": "104",
     "counterparty": "Gulf Electric Supplies", "status": "overdue", "type": "supplier",
     "category": "Electrical", "discount": 500,
     "items": [{"description": "Cables and breakers", "unit": "lot", "quantity": 1,
                "unit_price": 12500}]},
    {"invoice_number": "INV-2024-004", "date": "2024-05-12", "project": "102",
     "counterparty": "Dr. Khalid Al-Otaibi", "status": "paid", "type": "sales",
     "category": "Design fees", "discount": 0,
     "items": [{"description": "Concept design package", "unit": "lot", "quantity": 1,
                "unit_price": 25000}]},
]

MOCK_TRANSACTIONS = [
    {"serial_number": 1001, "type": "receipt", "date": "2024-05-01", "amount": 150000,
     "currency": "USD", "description": "Tower project installment (cash)", "project": "101",
     "from_account": "Horizon Real Estate", "to_account": "Main Treasury"},
    {"serial_number": 1002, "type": "receipt", "date": "2024-05-07", "amount": 25000,
     "currency": "USD", "description": "Clinic design installment", "project": "102",
     "from_account": "Dr. Khalid", "to_account": "Main Treasury"},
    {"serial_number": 5001, "type": "payment", "date": "2024-05-05", "amount": 50000,
     "currency": "USD", "description": "Steel purchase", "project": "101",
     "from_account": "Main Treasury", "to_account": "Yamama Steel Factory",
     "recipient_type": "supplier"},
    {"serial_number": 5002, "type": "payment", "date": "2024-05-06", "amount": 5000,
     "currency": "USD", "description": "Warehouses site advance", "project": "104",
     "from_account": "Main Treasury", "to_account": "Workshop Fund"},
    {"serial_number": 5003, "type": "payment", "date": "2024-05-20", "amount": 15000,
     "currency": "USD", "description": "Carpenter installment", "project": "101",
     "from_account": "Main Treasury", "to_account": "Abu Mohammad (carpenter)",
     "recipient_type": "craftsman", "recipient_name": "Abu Mohammad (carpenter)"},
    {"serial_number": 5004, "type": "payment", "date": "2024-05-22", "amount": 4000,
     "currency": "USD", "description": "Office stationery", "project": None,
     "from_account": "Main Treasury", "to_account": "Jarir Bookstore"},
    {"serial_number": 5005, "type": "payment", "date": "2024-05-24", "amount": 1200,
     "currency": "USD", "description": "Site tools bought from the workshop fund",
     "project": "104", "from_account": "Workshop Fund", "to_account": "Hardware store",
     "status": "pending_settlement"},
    {"serial_number": 9001, "type": "transfer", "date": "2024-05-25", "amount": 10000,
     "currency": "USD", "description": "Workshop fund top-up", "project": "101",
     "from_account": "Main Treasury", "to_account": "Workshop Fund"},
    {"serial_number": 5006, "type": "payment", "date": "2024-05-01", "amount": 250000,
     "currency": "SYP", "description": "Office hospitality", "project": None,
     "from_account": "Daily Cash Box", "to_account": "Supermarket"},
    {"serial_number": 1003, "type": "receipt", "date": "2024-05-05", "amount": 2000000,
     "currency": "SYP", "description": "Exchanged 200 USD", "project": None,
     "from_account": "Exchange office", "to_account": "Daily Cash Box"},
]


def fetch_recent_invoices() -> list[dict]:
    """Return the canned invoice feed.

    Each call hands out a fresh copy with line totals and amounts filled
    in, so callers may mutate the result freely.
    """
    invoices = copy.deepcopy(MOCK_INVOICES)
    for inv in invoices:
        for item in inv["items"]:
            item["total"] = round(item["quantity"] * item["unit_price"], 2)
        inv["subtotal"] = round(sum(item["total"] for item in inv["items"]), 2)
        inv["amount"] = round(max(0.0, inv["subtotal"] - inv["discount"]), 2)
    return invoices


def seed_mock_data(*, force: bool = False) -> dict:
    """Load the canned data into the store.

    Skips when projects already exist unless ``force`` is set. Rows are
    inserted as-is: seeded project accumulators are opening balances and
    are not recomputed from the seeded vouchers.

    Returns counts of inserted rows per entity.
    """
    if not force and Project.query.first() is not None:
        logger.info("Mock data skipped: store already has projects")
        return {"clients": 0, "projects": 0, "invoices": 0, "transactions": 0}

    clients = {}
    for row in MOCK_CLIENTS:
        client = Client(
            name=row["name"],
            company_name=row["company_name"] or None,
            phone=row["phone"],
            email=row["email"],
            join_date=date.fromisoformat(row["join_date"]),
        )
        db.session.add(client)
        clients[row["key"]] = client
    db.session.flush()

    projects = {}
    for row in MOCK_PROJECTS:
        fields = {k: v for k, v in row.items() if k not in ("key", "client", "start_date")}
        client = clients[row["client"]]
        project = Project(
            client_id=client.id,
            client_name=client.name,
            start_date=date.fromisoformat(row["start_date"]),
            **fields,
        )
        db.session.add(project)
        projects[row["key"]] = project
    db.session.flush()

    for row in fetch_recent_invoices():
        invoice = Invoice(
            invoice_number=row["invoice_number"],
            date=date.fromisoformat(row["date"]),
            project_id=projects[row["project"]].id,
            counterparty=row["counterparty"],
            status=row["status"],
            type=row["type"],
            category=row["category"],
            subtotal=row["subtotal"],
            discount=row["discount"],
            amount=row["amount"],
            items=[InvoiceItem(**item) for item in row["items"]],
        )
        db.session.add(invoice)

    for row in MOCK_TRANSACTIONS:
        fields = {k: v for k, v in row.items() if k not in ("project", "date")}
        status = fields.pop("status", "completed")
        txn_date = date.fromisoformat(row["date"])
        db.session.add(Transaction(
            project_id=projects[row["project"]].id if row["project"] else None,
            date=txn_date,
            status=status,
            actual_payment_date=txn_date if status == "completed" else None,
            **fields,
        ))

    db.session.commit()
    counts = {
        "clients": len(MOCK_CLIENTS),
        "projects": len(MOCK_PROJECTS),
        "invoices": len(MOCK_INVOICES),
        "transactions": len(MOCK_TRANSACTIONS),
    }
    logger.info("Mock data seeded: %s", counts)
    return counts
