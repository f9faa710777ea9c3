"""
Project finance and dashboard figures.

Contract positions:
    design project         remaining = budget - received
    lump sum execution     share = received - expenses,
                           remaining = budget - received
    percentage (cost plus) share = expenses * percentage / 100,
                           remaining = expenses + share - received

Only USD vouchers count; the SYP petty-cash ledger is reported apart.
"""

from sqlalchemy import func

from buildops.models import db
from buildops.models.invoice import Invoice
from buildops.models.project import ACTIVE_STATUSES, CONTRACT_LUMP_SUM, Project
from buildops.models.transaction import (
    LABOR_RECIPIENT_TYPES,
    TXN_PAYMENT,
    TXN_RECEIPT,
    Transaction,
)
from buildops.services.project_service import find_successor, get_project
from buildops.utils.helpers import format_currency


def project_financials(project_id: int) -> dict:
    project = get_project(project_id)
    txns = (
        Transaction.query
        .filter(Transaction.project_id == project.id, Transaction.currency == "USD")
        .all()
    )

    total_expenses = sum(t.amount for t in txns if t.type == TXN_PAYMENT)
    total_received = sum(t.amount for t in txns if t.type == TXN_RECEIPT)
    labor_cost = sum(
        t.amount for t in txns
        if t.type == TXN_PAYMENT and t.recipient_type in LABOR_RECIPIENT_TYPES
    )

    contract_value = project.budget or 0.0
    company_share = 0.0
    if project.is_design_project:
        remaining = contract_value - total_received
    elif project.contract_type == CONTRACT_LUMP_SUM:
        company_share = total_received - total_expenses
        remaining = contract_value - total_received
    else:
        company_share = total_expenses * (project.company_percentage or 0.0) / 100
        remaining = total_expenses + company_share - total_received

    if contract_value > 0:
        financial_progress = min(round(total_expenses / contract_value * 100), 100)
    else:
        financial_progress = 0

    workshop_low = (
        not project.is_design_project
        and project.workshop_balance is not None
        and project.workshop_threshold is not None
        and project.workshop_balance <= project.workshop_threshold
    )

    successor = find_successor(project.id)
    return {
        "project_id": project.id,
        "contract_type": project.contract_type,
        "contract_value": contract_value,
        "total_expenses": round(total_expenses, 2),
        "total_received": round(total_received, 2),
        "labor_cost": round(labor_cost, 2),
        "agreed_labor_budget": project.agreed_labor_budget,
        "company_share": round(company_share, 2),
        "remaining_payments": round(remaining, 2),
        "design_debt": round(project.design_debt, 2),
        "financial_progress": financial_progress,
        "technical_progress": project.progress,
        "workshop_balance": project.workshop_balance,
        "workshop_threshold": project.workshop_threshold,
        "workshop_fund_low": workshop_low,
        "related_project_id": project.related_project_id,
        "successor_project_id": successor.id if successor else None,
        "display": {
            "contract_value": format_currency(contract_value),
            "remaining_payments": format_currency(remaining),
        },
    }


def project_ledger(project_id: int) -> list[dict]:
    """Invoices and vouchers of one project, newest first.

    Voucher rows carry their own type as ``row_type`` (receipt, payment,
    journal or transfer); invoice rows carry ``"invoice"``.
    """
    project = get_project(project_id)
    rows = []
    for txn in Transaction.query.filter(Transaction.project_id == project.id):
        row = txn.to_dict()
        row["row_type"] = txn.type
        rows.append(row)
    for inv in Invoice.query.filter(Invoice.project_id == project.id):
        row = inv.to_dict(include_items=False)
        row["row_type"] = "invoice"
        rows.append(row)
    rows.sort(key=lambda r: r["date"] or "", reverse=True)
    return rows


def dashboard_stats() -> dict:
    revenue, expenses = db.session.query(
        func.coalesce(func.sum(Project.revenue), 0.0),
        func.coalesce(func.sum(Project.expenses), 0.0),
    ).one()
    active = Project.query.filter(Project.status.in_(ACTIVE_STATUSES)).count()
    net = revenue - expenses
    if net > 0:
        cash_flow = "positive"
    elif net < 0:
        cash_flow = "negative"
    else:
        cash_flow = "neutral"
    return {
        "total_revenue": round(revenue, 2),
        "total_expenses": round(expenses, 2),
        "net_profit": round(net, 2),
        "active_projects": active,
        "cash_flow_status": cash_flow,
    }
