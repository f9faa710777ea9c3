"""Project CRUD service.

Status changes are not accepted here; they go through
``project_lifecycle.transition_project`` so stage rules always apply.
Functions flush, callers commit.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import or_

from buildops.core.exceptions import ConflictError, NotFoundError, ValidationError
from buildops.models import db
from buildops.models.audit import write_audit
from buildops.models.client import Client
from buildops.models.project import (
    CONTRACT_PERCENTAGE,
    CONTRACT_TYPES,
    PROJECT_STATUSES,
    PROJECT_TYPES,
    STATUS_DESIGN,
    STATUS_EXECUTION,
    TYPE_DESIGN,
    Project,
)
from buildops.utils.helpers import parse_amount, parse_date

logger = logging.getLogger(__name__)

UNREGISTERED_CLIENT = "Unregistered client"

_MONEY_FIELDS = (
    "budget", "estimated_cost", "company_percentage", "agreed_labor_budget",
    "workshop_balance", "workshop_threshold",
)


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def find_successor(project_id: int) -> Project | None:
    """Return the project split from *project_id*, if any."""
    return Project.query.filter(Project.related_project_id == project_id).first()


def list_projects(
    *,
    search: str | None = None,
    status: str | None = None,
    include_archived: bool = True,
) -> list[Project]:
    """List projects, newest first, with optional substring search."""
    query = Project.query
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Project.name.ilike(like),
            Project.client_name.ilike(like),
            Project.location.ilike(like),
        ))
    if status:
        query = query.filter(Project.status == status)
    if not include_archived:
        query = query.filter(Project.is_archived.is_(False))
    return query.order_by(Project.created_at.desc(), Project.id.desc()).all()


def project_board(*, search: str | None = None) -> dict:
    """Group projects into design / execution / other board columns."""
    columns: dict[str, list[dict]] = {"design": [], "execution": [], "other": []}
    for project in list_projects(search=search):
        if project.status == STATUS_DESIGN:
            key = "design"
        elif project.status == STATUS_EXECUTION:
            key = "execution"
        else:
            key = "other"
        columns[key].append(project.to_dict())
    return {
        name: {"count": len(items), "projects": items}
        for name, items in columns.items()
    }


# ── Clients ──────────────────────────────────────────────────────────────────


def list_clients(*, search: str | None = None) -> list[Client]:
    query = Client.query
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Client.name.ilike(like), Client.company_name.ilike(like)))
    return query.order_by(Client.name).all()


def create_client(data: dict, *, actor: str = "system") -> Client:
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValidationError("Client name is required", details={"name": "required"})
    client = Client(
        name=name,
        company_name=str(data.get("company_name") or "").strip() or None,
        phone=str(data.get("phone") or "").strip() or None,
        email=str(data.get("email") or "").strip() or None,
        join_date=parse_date(data.get("join_date")) or date.today(),
    )
    db.session.add(client)
    db.session.flush()
    write_audit(
        entity_type="client", entity_id=client.id, action="create", actor=actor,
        description=f"Registered client {client.name}",
    )
    return client


# ── Projects: validation helpers ─────────────────────────────────────────────


def _resolve_client(data: dict, fallback: str | None = None) -> tuple[int | None, str]:
    client_id = data.get("client_id")
    if client_id:
        client = db.session.get(Client, client_id)
        if client is None:
            raise NotFoundError(resource="Client", resource_id=client_id)
        return client.id, client.name
    name = str(data.get("client_name") or "").strip()
    return None, name or fallback or UNREGISTERED_CLIENT


def _parse_money_fields(data: dict, errors: dict) -> dict:
    values = {}
    for field in _MONEY_FIELDS:
        if field not in data:
            continue
        try:
            value = parse_amount(data.get(field))
        except ValueError as exc:
            errors[field] = str(exc)
            continue
        if value < 0:
            errors[field] = f"{field} cannot be negative"
            continue
        values[field] = value
    return values


def _validate_choice(data: dict, field: str, allowed: set[str], errors: dict) -> str | None:
    if field not in data or data.get(field) in (None, ""):
        return None
    value = str(data[field]).strip()
    if value not in allowed:
        errors[field] = f"must be one of: {', '.join(sorted(allowed))}"
        return None
    return value


def _parse_progress(data: dict, errors: dict) -> int | None:
    if "progress" not in data:
        return None
    try:
        progress = int(data.get("progress") or 0)
    except (TypeError, ValueError):
        errors["progress"] = "progress must be an integer"
        return None
    if not 0 <= progress <= 100:
        errors["progress"] = "progress must be between 0 and 100"
        return None
    return progress


def create_project(data: dict, *, actor: str = "system") -> Project:
    """Create a project. New projects start with no revenue, expenses or progress."""
    errors: dict[str, str] = {}
    name = str(data.get("name", "") or "").strip()
    if not name:
        errors["name"] = "name is required"

    status = _validate_choice(data, "status", PROJECT_STATUSES, errors) or STATUS_DESIGN
    ptype = _validate_choice(data, "type", PROJECT_TYPES, errors) or TYPE_DESIGN
    contract_type = (
        _validate_choice(data, "contract_type", CONTRACT_TYPES, errors) or CONTRACT_PERCENTAGE
    )

    money = _parse_money_fields(data, errors)
    if errors:
        raise ValidationError("Project cannot be saved", details=errors)

    client_id, client_name = _resolve_client(data)

    project = Project(
        name=name,
        client_id=client_id,
        client_name=client_name,
        location=str(data.get("location", "") or "").strip(),
        start_date=parse_date(data.get("start_date")),
        status=status,
        type=ptype,
        contract_type=contract_type,
        progress=0,
        revenue=0.0,
        expenses=0.0,
        **money,
    )

    db.session.add(project)
    db.session.flush()
    write_audit(
        entity_type="project", entity_id=project.id, action="create", actor=actor,
        project_id=project.id, description=f"Created project {project.name}",
    )
    logger.info("Project created id=%s name=%s", project.id, project.name,
                extra={"project_id": project.id})
    return project


def update_project(project_id: int, data: dict, *, actor: str = "system") -> Project:
    """Update editable project fields."""
    project = get_project(project_id)

    if "status" in data and data.get("status") != project.status:
        raise ValidationError(
            "Use the stage transition endpoint to change project status",
            details={"status": "read-only"},
        )
    if "related_project_id" in data and data.get("related_project_id") != project.related_project_id:
        raise ValidationError(
            "related_project_id is set by stage transitions only",
            details={"related_project_id": "read-only"},
        )

    errors: dict[str, str] = {}
    name = None
    if "name" in data:
        name = str(data.get("name", "") or "").strip()
        if not name:
            errors["name"] = "name cannot be empty"
    ptype = _validate_choice(data, "type", PROJECT_TYPES, errors)
    contract_type = _validate_choice(data, "contract_type", CONTRACT_TYPES, errors)
    progress = _parse_progress(data, errors)
    money = _parse_money_fields(data, errors)
    if errors:
        raise ValidationError("Project cannot be saved", details=errors)

    before = project.to_dict()

    if name:
        project.name = name
    if ptype:
        project.type = ptype
    if contract_type:
        project.contract_type = contract_type
    if progress is not None:
        project.progress = progress
    for field, value in money.items():
        setattr(project, field, value)
    if "client_id" in data or "client_name" in data:
        project.client_id, project.client_name = _resolve_client(data, fallback=project.client_name)
    if "location" in data:
        project.location = str(data.get("location", "") or "").strip()
    if "start_date" in data:
        project.start_date = parse_date(data.get("start_date"))

    db.session.flush()
    after = project.to_dict()
    changes = {
        key: {"old": before[key], "new": after[key]}
        for key in after
        if key != "updated_at" and before.get(key) != after[key]
    }
    write_audit(
        entity_type="project", entity_id=project.id, action="update", actor=actor,
        project_id=project.id, description=f"Updated project {project.name}", diff=changes,
    )
    return project


def delete_project(project_id: int, *, actor: str = "system") -> None:
    """Delete a project together with its invoices.

    A design project that already has an execution successor cannot be
    deleted; the successor's link would dangle.
    """
    project = get_project(project_id)
    successor = find_successor(project.id)
    if successor is not None:
        raise ConflictError(
            "Project", "related_project_id", successor.id,
            message=f"Project {project.id} has successor project {successor.id}",
        )
    name = project.name
    db.session.delete(project)
    db.session.flush()
    write_audit(
        entity_type="project", entity_id=project_id, action="delete", actor=actor,
        description=f"Deleted project {name}",
    )
    logger.info("Project deleted id=%s", project_id, extra={"project_id": project_id})
