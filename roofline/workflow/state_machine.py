"""Deal status transitions.

Reps never pick a status. Their field edits go through
:func:`evaluate_update`, which decides whether the deal also moves one
stage forward. Stages whose entry belongs to the back office are moved by
:func:`admin_transition` against a fixed transition graph.
"""

from __future__ import annotations

import logging
import typing
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any

from roofline.core.enums import DealStatus
from roofline.core.exceptions import InvalidTransitionError, ValidationError
from roofline.schemas.common import Notice
from roofline.schemas.deals import DEAL_FIELDS, FINANCIAL_FIELDS, Deal, merge_pending
from roofline.workflow.requirements import ADJUSTER_NOT_ASSIGNED, is_stage_satisfied
from roofline.workflow.steps import (
    WorkflowStepDefinition,
    get_step,
    next_step,
    position_of,
)

logger = logging.getLogger(__name__)

STATUS_IS_DERIVED = "Status updates automatically as each step's requirements are met."
FINANCIALS_LOCKED = "Financials are locked once the claim is approved. Ask an admin to change them."
ADMIN_OWNED = "Some of these fields are managed by the office and were not saved."

# Written only through the admin service; rep edits drop them.
ADMIN_OWNED_FIELDS = frozenset(
    {
        "approval_type",
        "approved_date",
        "install_date",
        "installed_date",
        "invoice_url",
        "invoice_amount",
        "invoice_sent_date",
        "complete_date",
        "commission_override_amount",
        "commission_override_reason",
        "commission_override_date",
        "commission_paid",
        "commission_paid_date",
        "deal_commissions",
    }
)



class StateMachine:
    """Simple in-memory state machine over string states."""

    def __init__(self, transitions: dict[str, set[str]]) -> None:
        self._transitions = transitions

    def can_transition(self, current: str, target: str) -> bool:
        return target in self._transitions.get(current, set())

    def allowed_from(self, current: str) -> set[str]:
        return set(self._transitions.get(current, set()))

    def assert_transition(self, current: str, target: str) -> None:
        if not self.can_transition(current=current, target=target):
            raise InvalidTransitionError(f"Transition not allowed: {current} -> {target}")


ADMIN_STATE_MACHINE = StateMachine(
    {
        DealStatus.AWAITING_APPROVAL.value: {DealStatus.APPROVED.value},
        DealStatus.MATERIALS_SELECTED.value: {DealStatus.INSTALL_SCHEDULED.value},
        DealStatus.INSTALL_SCHEDULED.value: {DealStatus.INSTALLED.value},
        DealStatus.COMPLETION_SIGNED.value: {DealStatus.INVOICE_SENT.value},
        DealStatus.DEPRECIATION_COLLECTED.value: {DealStatus.COMPLETE.value},
        DealStatus.COMPLETE.value: {DealStatus.PAID.value},
    }
)


@dataclass
class WorkflowDecision:
    """Outcome of evaluating a rep's edit against the workflow."""

    deal_id: str
    from_status: DealStatus
    to_status: DealStatus
    updates: dict[str, Any] = field(default_factory=dict)
    notices: list[Notice] = field(default_factory=list)
    held_for_admin: bool = False

    @property
    def advanced(self) -> bool:
        return self.to_status != self.from_status

    @property
    def has_changes(self) -> bool:
        return bool(self.updates)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def milestone_value(field_name: str, now: datetime) -> date | datetime:
    """Stamp value matching the field's declared type."""
    annotation = Deal.model_fields[field_name].annotation
    if datetime in typing.get_args(annotation) or annotation is datetime:
        return now
    return now.date()


def _stamp_milestone(updates: dict[str, Any], deal: Deal, step: WorkflowStepDefinition, now: datetime) -> None:
    name = step.milestone_field
    if not name or name in updates or getattr(deal, name) is not None:
        return
    updates[name] = milestone_value(name, now)


def resolve_next_status(deal: Deal) -> DealStatus | None:
    """The stage a fully satisfied deal moves to next.

    Deals without an assigned adjuster skip ``adjuster_met`` entirely.
    """
    status = DealStatus(deal.status)
    if status == DealStatus.CLAIM_FILED and deal.adjuster_not_assigned:
        return DealStatus.AWAITING_APPROVAL
    upcoming = next_step(status)
    return upcoming.status if upcoming else None


def _check_fields(pending: dict[str, Any]) -> None:
    unknown = sorted(key for key in pending if key not in DEAL_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown deal fields: {', '.join(unknown)}")
    if "id" in pending:
        raise ValidationError("Deal id is immutable.")


def evaluate_update(
    deal: Deal,
    pending: dict[str, Any],
    now: datetime | None = None,
    advance: bool = True,
) -> WorkflowDecision:
    """Decide what a rep's edit persists and whether status advances.

    ``deal`` is the persisted snapshot and ``pending`` the partial edit.
    The returned ``updates`` are the exact fields to send in one call.
    With ``advance=False`` (background autosave) the edit is filtered the
    same way but never moves the deal.
    """
    _check_fields(pending)
    now = now or _utcnow()
    current = DealStatus(deal.status)
    updates = dict(pending)
    decision = WorkflowDecision(deal_id=deal.id, from_status=current, to_status=current)

    if "status" in updates:
        requested = updates.pop("status")
        logger.info(
            "deal.status_write_rejected",
            extra={"event": "deal.status_write_rejected", "deal_id": deal.id, "requested": str(requested)},
        )
        decision.notices.append(Notice.info(STATUS_IS_DERIVED))

    dropped = sorted(name for name in updates if name in ADMIN_OWNED_FIELDS)
    if dropped:
        for name in dropped:
            del updates[name]
        logger.info(
            "deal.admin_fields_rejected",
            extra={"event": "deal.admin_fields_rejected", "deal_id": deal.id, "fields": dropped},
        )
        decision.notices.append(Notice.info(ADMIN_OWNED))

    if deal.financials_locked:
        locked = [name for name in FINANCIAL_FIELDS if name in updates and updates[name] != getattr(deal, name)]
        for name in FINANCIAL_FIELDS:
            updates.pop(name, None)
        if locked:
            decision.notices.append(Notice.info(FINANCIALS_LOCKED))

    not_assigned = updates.get("adjuster_not_assigned", deal.adjuster_not_assigned)
    if not_assigned:
        flagged_now = "adjuster_not_assigned" in updates
        if flagged_now or "adjuster_phone" in updates or deal.adjuster_phone != ADJUSTER_NOT_ASSIGNED:
            updates["adjuster_phone"] = ADJUSTER_NOT_ASSIGNED
        if flagged_now or "adjuster_meeting_date" in updates or deal.adjuster_meeting_date is not None:
            updates["adjuster_meeting_date"] = None
    elif "adjuster_not_assigned" in updates:
        # Unflagging clears the placeholder so a real phone is required again.
        if updates.get("adjuster_phone", deal.adjuster_phone) == ADJUSTER_NOT_ASSIGNED:
            updates["adjuster_phone"] = None

    decision.updates = updates
    # An edit that was filtered down to nothing never moves the deal; an
    # empty edit is a plain "continue" and re-checks the persisted record.
    if not advance or (pending and not updates):
        return decision

    step = get_step(current)
    merged = merge_pending(deal, updates)
    if not is_stage_satisfied(merged, step):
        return decision

    target = resolve_next_status(merged)
    if target is None:
        return decision

    target_step = get_step(target)
    if target_step.admin_only:
        decision.held_for_admin = True
        decision.notices.append(Notice.info(f"All set. Waiting for an admin to move this deal to {target_step.label}."))
        logger.info(
            "deal.held_for_admin",
            extra={"event": "deal.held_for_admin", "deal_id": deal.id, "status": current.value},
        )
        return decision

    if not step.requirements:
        # Left only through an outside signal such as inspection photos.
        return decision

    updates["status"] = target
    _stamp_milestone(updates, deal, target_step, now)
    decision.to_status = target
    decision.notices.append(Notice.success(f"Deal moved to: {target_step.label}"))
    return decision


def inspection_photos_uploaded(deal: Deal, image_keys: list[str], now: datetime | None = None) -> WorkflowDecision:
    """External signal: inspection photos moved a lead to inspection_scheduled."""
    now = now or _utcnow()
    current = DealStatus(deal.status)
    images = list(deal.inspection_images or []) + [key for key in image_keys if key]
    decision = WorkflowDecision(deal_id=deal.id, from_status=current, to_status=current)
    decision.updates = {"inspection_images": images}
    if current == DealStatus.LEAD and images:
        target_step = get_step(DealStatus.INSPECTION_SCHEDULED)
        decision.updates["status"] = target_step.status
        _stamp_milestone(decision.updates, deal, target_step, now)
        decision.to_status = target_step.status
        decision.notices.append(Notice.success(f"Deal moved to: {target_step.label}"))
    return decision


def admin_transition(
    deal: Deal,
    target: DealStatus | str,
    extra: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the update for an admin-owned move; raises on an invalid hop."""
    now = now or _utcnow()
    target = DealStatus(target)
    ADMIN_STATE_MACHINE.assert_transition(DealStatus(deal.status).value, target.value)
    updates: dict[str, Any] = dict(extra or {})
    _check_fields(updates)
    updates["status"] = target
    _stamp_milestone(updates, deal, get_step(target), now)
    return updates


def is_forward(current: DealStatus | str, target: DealStatus | str) -> bool:
    return position_of(target) > position_of(current)


def forced_transition(deal: Deal, target: DealStatus | str, now: datetime | None = None) -> dict[str, Any]:
    """Admin override: any status, no graph check. Milestones still stamp."""
    now = now or _utcnow()
    target = DealStatus(target)
    updates: dict[str, Any] = {"status": target}
    if target != DealStatus(deal.status):
        _stamp_milestone(updates, deal, get_step(target), now)
    return updates
