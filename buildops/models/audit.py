"""
BuildOps Dashboard
Activity log model.

Models:
    - ActivityLog: immutable, append-only trail of who changed what.
"""

import json
from datetime import UTC, datetime

from buildops.models import db

# ── Constants ────────────────────────────────────────────────────────────────

AUDIT_ENTITY_TYPES = {"project", "invoice", "transaction", "client"}

AUDIT_ACTIONS = {
    "create",
    "update",
    "delete",
    # Project lifecycle
    "project.transition",
    "project.archive",
    "project.split",
    # Invoice
    "invoice.status",
    # Transaction
    "transaction.settle",
}


class ActivityLog(db.Model):
    """
    One row per action. ``diff_json`` carries an old→new snapshot for
    field-level changes, or the transition outcome for lifecycle events.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("idx_activity_entity", "entity_type", "entity_id"),
        db.Index("idx_activity_action", "action"),
        db.Index("idx_activity_ts", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    entity_type = db.Column(db.String(30), nullable=False, comment="project | invoice | transaction | client")
    entity_id = db.Column(db.String(36), nullable=False)

    action = db.Column(db.String(60), nullable=False, comment="create | update | project.transition | …")
    actor = db.Column(db.String(150), nullable=False, default="system")
    description = db.Column(db.String(500), nullable=True)

    diff_json = db.Column(db.Text, default="{}")

    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(UTC),
    )

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def diff(self) -> dict:
        """Deserialise *diff_json* to a Python dict."""
        try:
            return json.loads(self.diff_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "actor": self.actor,
            "description": self.description,
            "diff": self.diff,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }

    def __repr__(self):
        return f"<ActivityLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_audit(
    *,
    entity_type: str,
    entity_id,
    action: str,
    actor: str = "system",
    project_id: int | None = None,
    description: str | None = None,
    diff: dict | None = None,
) -> ActivityLog:
    """
    Append a single activity row. Uses ``flush`` so callers keep
    transaction control.

    Returns the (flushed) ActivityLog instance.
    """
    log = ActivityLog(
        project_id=project_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        actor=actor or "system",
        description=description,
        diff_json=json.dumps(diff or {}, default=str),
    )
    db.session.add(log)
    db.session.flush()
    return log
