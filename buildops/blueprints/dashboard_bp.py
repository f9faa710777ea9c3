"""
Dashboard blueprint.

Top-line KPIs for the home screen, summed over the project accumulators.
"""

from flask import Blueprint, jsonify

from buildops.services import finance_service
from buildops.services.transaction_service import pending_settlement_count
from buildops.utils.helpers import format_currency

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("/stats", methods=["GET"])
def stats():
    data = finance_service.dashboard_stats()
    data["pending_settlements"] = pending_settlement_count()
    data["display"] = {
        key: format_currency(data[key])
        for key in ("total_revenue", "total_expenses", "net_profit")
    }
    return jsonify(data), 200
