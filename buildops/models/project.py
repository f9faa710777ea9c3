"""
BuildOps Dashboard
Project domain model.

Lifecycle:
    proposed → design → execution → delivered
    any stage → stopped | delayed

A design project that moves to execution is split: the execution work
lives in a successor row whose ``related_project_id`` points back at the
design row. At most one successor may exist per design project.
"""

from datetime import datetime, timezone

from buildops.models import db


# ── Constants ────────────────────────────────────────────────────────────────

STATUS_PROPOSED = "proposed"
STATUS_DESIGN = "design"
STATUS_EXECUTION = "execution"
STATUS_DELIVERED = "delivered"
STATUS_STOPPED = "stopped"
STATUS_DELAYED = "delayed"

PROJECT_STATUSES = {
    STATUS_PROPOSED, STATUS_DESIGN, STATUS_EXECUTION,
    STATUS_DELIVERED, STATUS_STOPPED, STATUS_DELAYED,
}

# Statuses counted as "active" on the dashboard
ACTIVE_STATUSES = {STATUS_DESIGN, STATUS_EXECUTION}

TYPE_DESIGN = "design"
TYPE_EXECUTION = "execution"
TYPE_SUPERVISION = "supervision"
TYPE_OTHER = "other"

PROJECT_TYPES = {TYPE_DESIGN, TYPE_EXECUTION, TYPE_SUPERVISION, TYPE_OTHER}

CONTRACT_PERCENTAGE = "percentage"   # cost plus: client pays expenses + a share
CONTRACT_LUMP_SUM = "lump_sum"

CONTRACT_TYPES = {CONTRACT_PERCENTAGE, CONTRACT_LUMP_SUM}

ARCHIVE_SUFFIX = " (Design - Archived)"
EXECUTION_SUFFIX = " (Execution)"


class Project(db.Model):
    """A design or construction engagement for a client."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_name = db.Column(db.String(200), nullable=False, default="Unregistered client")
    location = db.Column(db.String(200), nullable=False, default="")
    start_date = db.Column(db.Date, nullable=True)
    progress = db.Column(db.Integer, nullable=False, default=0, comment="0-100 technical progress")

    status = db.Column(db.String(30), nullable=False, default=STATUS_DESIGN, index=True)
    type = db.Column(db.String(30), nullable=False, default=TYPE_DESIGN)

    # ── Contract terms ──
    budget = db.Column(db.Float, nullable=False, default=0.0, comment="Contract value")
    estimated_cost = db.Column(db.Float, nullable=True)
    contract_type = db.Column(
        db.String(30), nullable=False, default=CONTRACT_PERCENTAGE,
        comment="percentage | lump_sum",
    )
    company_percentage = db.Column(db.Float, nullable=True, default=0.0)
    agreed_labor_budget = db.Column(
        db.Float, nullable=True, default=0.0,
        comment="Fixed labor cost for lump-sum contracts",
    )

    # ── Accumulators ──
    revenue = db.Column(db.Float, nullable=False, default=0.0)
    expenses = db.Column(db.Float, nullable=False, default=0.0)

    # ── Workshop fund ──
    workshop_balance = db.Column(db.Float, nullable=True)
    workshop_threshold = db.Column(db.Float, nullable=True, comment="Low-balance alert floor")

    # ── Stage split ──
    related_project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Design project this execution project was split from",
    )
    is_archived = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    predecessor = db.relationship("Project", remote_side=[id], foreign_keys=[related_project_id])

    @property
    def design_debt(self) -> float:
        """Budget not yet covered by recognized revenue."""
        return (self.budget or 0.0) - (self.revenue or 0.0)

    @property
    def is_design_project(self) -> bool:
        return self.status == STATUS_DESIGN or self.type == TYPE_DESIGN

    def contract_terms(self) -> dict:
        return {
            "contract_type": self.contract_type,
            "budget": self.budget,
            "estimated_cost": self.estimated_cost,
            "company_percentage": self.company_percentage,
            "agreed_labor_budget": self.agreed_labor_budget,
        }

    def to_dict(self) -> dict:
        """Serialize project fields for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "client_id": self.client_id,
            "client_name": self.client_name,
            "location": self.location,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "progress": self.progress,
            "status": self.status,
            "type": self.type,
            **self.contract_terms(),
            "revenue": self.revenue,
            "expenses": self.expenses,
            "workshop_balance": self.workshop_balance,
            "workshop_threshold": self.workshop_threshold,
            "related_project_id": self.related_project_id,
            "is_archived": self.is_archived,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.name} [{self.status}]>"
