"""
Project stage transitions.

Rules:
  - Target equal to the current stage is a no-op.
  - Any move to execution is refused once a successor project links back
    to this one (``related_project_id``): a design project splits at most
    once.
  - design → execution splits the project on its design debt
    (budget - revenue):
      debt <= 0  the design row is archived (delivered, renamed) and a new
                 execution row continues it under the original name with
                 the new contract terms.
      debt > 0   the design row stays live so the debt can be collected on
                 it; a separate execution row carries the new terms.
  - → delivered with outstanding debt needs ``confirm=True``.
  - Everything else is a plain status update.

Usage:
    from buildops.services.project_lifecycle import transition_project

    result = transition_project(
        project_id=7,
        target_status="execution",
        contract_terms={"contract_type": "lump_sum", "budget": 900000},
        actor="finance",
    )
"""

from __future__ import annotations

import logging

from buildops.core.exceptions import ConfirmationRequiredError, ConflictError, ValidationError
from buildops.models import db
from buildops.models.audit import write_audit
from buildops.models.project import (
    ARCHIVE_SUFFIX,
    CONTRACT_TYPES,
    EXECUTION_SUFFIX,
    PROJECT_STATUSES,
    STATUS_DELIVERED,
    STATUS_DESIGN,
    STATUS_EXECUTION,
    TYPE_EXECUTION,
    Project,
)
from buildops.services.project_service import find_successor, get_project
from buildops.utils.helpers import parse_amount

logger = logging.getLogger(__name__)

ACTION_NOOP = "noop"
ACTION_STATUS = "status_update"
ACTION_ARCHIVE = "archived_and_continued"
ACTION_SPLIT = "split"
ACTION_DELIVERED = "delivered"

_TERM_AMOUNTS = ("budget", "estimated_cost", "company_percentage", "agreed_labor_budget")


def parse_contract_terms(design: Project, terms: dict | None) -> dict:
    """Validate the contract terms the execution project will carry.

    Missing values default to the design project's contract type and
    zero amounts.
    """
    terms = terms or {}
    errors: dict[str, str] = {}

    contract_type = terms.get("contract_type") or design.contract_type
    if contract_type not in CONTRACT_TYPES:
        errors["contract_type"] = f"must be one of: {', '.join(sorted(CONTRACT_TYPES))}"

    parsed = {"contract_type": contract_type}
    for field in _TERM_AMOUNTS:
        try:
            value = parse_amount(terms.get(field))
        except ValueError as exc:
            errors[field] = str(exc)
            continue
        if value < 0:
            errors[field] = f"{field} cannot be negative"
            continue
        parsed[field] = value

    if errors:
        raise ValidationError("Invalid contract terms", details=errors)
    return parsed


def _new_execution_project(design: Project, name: str, terms: dict) -> Project:
    execution = Project(
        name=name,
        client_id=design.client_id,
        client_name=design.client_name,
        location=design.location,
        start_date=design.start_date,
        status=STATUS_EXECUTION,
        type=TYPE_EXECUTION,
        progress=0,
        revenue=0.0,
        expenses=0.0,
        related_project_id=design.id,
        **terms,
    )
    db.session.add(execution)
    db.session.flush()
    return execution


def _split_design(project: Project, contract_terms: dict | None, actor: str) -> dict:
    successor = find_successor(project.id)
    if successor is not None:
        raise ConflictError(
            "Project", "related_project_id", project.id,
            message=(
                f"Project {project.id} already moved to execution "
                f"as project {successor.id}"
            ),
        )

    terms = parse_contract_terms(project, contract_terms)
    debt = project.design_debt
    original_name = project.name

    if debt <= 0:
        project.status = STATUS_DELIVERED
        project.is_archived = True
        project.name = f"{original_name}{ARCHIVE_SUFFIX}"
        execution = _new_execution_project(project, original_name, terms)
        action = ACTION_ARCHIVE
        audit_action = "project.archive"
    else:
        execution = _new_execution_project(project, f"{original_name}{EXECUTION_SUFFIX}", terms)
        action = ACTION_SPLIT
        audit_action = "project.split"

    write_audit(
        entity_type="project", entity_id=project.id, action=audit_action, actor=actor,
        project_id=project.id,
        description=f"Moved {original_name} to execution as project {execution.id}",
        diff={"design_debt": debt, "execution_project_id": execution.id, "terms": terms},
    )
    write_audit(
        entity_type="project", entity_id=execution.id, action="create", actor=actor,
        project_id=execution.id,
        description=f"Execution project split from project {project.id}",
    )
    logger.info(
        "Design project %s moved to execution: action=%s debt=%.2f successor=%s",
        project.id, action, debt, execution.id,
        extra={"project_id": project.id, "event_type": "project.transition"},
    )
    return {
        "action": action,
        "project": project.to_dict(),
        "execution_project": execution.to_dict(),
        "design_debt": debt,
    }


def transition_project(
    project_id: int,
    target_status: str,
    *,
    contract_terms: dict | None = None,
    confirm: bool = False,
    actor: str = "system",
) -> dict:
    """Move a project to *target_status*.

    Returns a dict with ``action`` (noop | status_update | delivered |
    archived_and_continued | split) and the affected project rows.

    Raises:
        NotFoundError: unknown project.
        ValidationError: unknown status or bad contract terms.
        ConflictError: the project already has an execution successor.
        ConfirmationRequiredError: delivering with outstanding debt.
    """
    project = get_project(project_id)
    target = (target_status or "").strip()
    if target not in PROJECT_STATUSES:
        raise ValidationError(
            f"Unknown status: {target_status!r}",
            details={"status": f"must be one of: {', '.join(sorted(PROJECT_STATUSES))}"},
        )

    current = project.status
    if target == current:
        return {"action": ACTION_NOOP, "project": project.to_dict()}

    if target == STATUS_EXECUTION:
        if current == STATUS_DESIGN:
            return _split_design(project, contract_terms, actor)
        successor = find_successor(project.id)
        if successor is not None:
            raise ConflictError(
                "Project", "related_project_id", project.id,
                message=(
                    f"Project {project.id} already moved to execution "
                    f"as project {successor.id}"
                ),
            )

    action = ACTION_STATUS
    outstanding = project.design_debt
    if target == STATUS_DELIVERED:
        if outstanding > 0 and not confirm:
            raise ConfirmationRequiredError(
                f"Project {project.name} still has {outstanding:,.2f} outstanding. "
                "Confirm to close it anyway.",
                details={"outstanding": outstanding, "budget": project.budget,
                         "revenue": project.revenue},
            )
        if outstanding > 0:
            logger.warning(
                "Project %s delivered with outstanding balance %.2f",
                project.id, outstanding,
                extra={"project_id": project.id, "event_type": "project.transition"},
            )
        action = ACTION_DELIVERED

    project.status = target
    db.session.flush()
    write_audit(
        entity_type="project", entity_id=project.id, action="project.transition", actor=actor,
        project_id=project.id,
        description=f"Moved {project.name} from {current} to {target}",
        diff={"status": {"old": current, "new": target}},
    )
    logger.info("Project %s moved %s -> %s", project.id, current, target,
                extra={"project_id": project.id, "event_type": "project.transition"})

    result = {"action": action, "project": project.to_dict()}
    if action == ACTION_DELIVERED:
        result["outstanding"] = max(outstanding, 0.0)
    return result
