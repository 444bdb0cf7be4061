"""Back-office deal actions.

Admins own the stage entries reps cannot make themselves. Ordinary moves
follow the admin transition graph; ``override_status`` is the escape
hatch and is always logged loudly.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Callable

from roofline.clients.deals_api import DealsGateway
from roofline.core.enums import ApprovalType, DealStatus, UserRole
from roofline.core.exceptions import PersistenceError, RooflineException, ValidationError
from roofline.core.logging import LogContext, build_log_event
from roofline.schemas.deals import FINANCIAL_FIELDS, Deal
from roofline.utils.validators import sanitize_text
from roofline.workflow.requirements import is_present
from roofline.workflow.state_machine import admin_transition, forced_transition

logger = logging.getLogger(__name__)


class AdminDealService:
    def __init__(
        self,
        deals: DealsGateway,
        actor_id: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.deals = deals
        self.actor_id = actor_id
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _context(self, deal: Deal, action: str) -> LogContext:
        return LogContext(deal_id=deal.id, user_id=self.actor_id, role=UserRole.ADMIN.value, action=action)

    def _save(self, deal: Deal, updates: dict[str, Any], action: str) -> Deal:
        try:
            saved = self.deals.update(deal.id, updates)
        except RooflineException:
            raise
        except Exception as exc:
            raise PersistenceError(action, str(exc)) from exc
        logger.info(
            "admin.deal_updated",
            extra=build_log_event(
                "admin.deal_updated",
                self._context(deal, action),
                fields=sorted(updates),
                to_status=saved.status.value,
            ),
        )
        return saved

    def _move(self, deal: Deal, target: DealStatus, action: str, extra: dict[str, Any] | None = None) -> Deal:
        updates = admin_transition(deal, target, extra=extra, now=self._clock())
        return self._save(deal, updates, action)

    def approve_financials(self, deal: Deal, approval_type: ApprovalType | str = ApprovalType.FULL) -> Deal:
        """Approve the claim amounts; this also locks them against rep edits."""
        approval_type = ApprovalType(approval_type)
        missing = [name for name in FINANCIAL_FIELDS if not is_present(getattr(deal, name))]
        if missing:
            raise ValidationError(f"Cannot approve without: {', '.join(missing)}")
        return self._move(deal, DealStatus.APPROVED, "approve financials", {"approval_type": approval_type.value})

    def schedule_install(self, deal: Deal, install_date: date) -> Deal:
        if install_date is None:
            raise ValidationError("Install date is required.")
        return self._move(deal, DealStatus.INSTALL_SCHEDULED, "schedule install", {"install_date": install_date})

    def mark_installed(self, deal: Deal) -> Deal:
        return self._move(deal, DealStatus.INSTALLED, "mark installed")

    def send_invoice(self, deal: Deal, invoice_key: str, invoice_amount: float | None = None) -> Deal:
        if not invoice_key:
            raise ValidationError("Upload the invoice before sending it.")
        extra: dict[str, Any] = {"invoice_url": invoice_key, "invoice_sent_date": self._clock().date()}
        if invoice_amount is not None:
            if invoice_amount < 0:
                raise ValidationError("Invoice amount cannot be negative.")
            extra["invoice_amount"] = invoice_amount
        return self._move(deal, DealStatus.INVOICE_SENT, "send invoice", extra)

    def complete_deal(self, deal: Deal) -> Deal:
        """Approve the rep's payment request."""
        if not deal.payment_requested:
            raise ValidationError("The rep has not requested payment for this deal.")
        return self._move(deal, DealStatus.COMPLETE, "complete deal")

    def approve_commission(self, deal: Deal) -> Deal:
        return self._move(
            deal,
            DealStatus.PAID,
            "approve commission",
            {"commission_paid": True, "commission_paid_date": self._clock().date()},
        )

    def override_commission(self, deal: Deal, amount: float, reason: str) -> Deal:
        reason = sanitize_text(reason, max_len=2000)
        if not reason:
            raise ValidationError("A reason is required to override the commission.")
        if amount is None or amount < 0:
            raise ValidationError("Override amount must be zero or more.")
        updates = {
            "commission_override_amount": float(amount),
            "commission_override_reason": reason,
            "commission_override_date": self._clock(),
        }
        return self._save(deal, updates, "override commission")

    def override_status(self, deal: Deal, status: DealStatus | str, reason: str) -> Deal:
        """Set any status, skipping the transition graph."""
        reason = sanitize_text(reason, max_len=2000)
        if not reason:
            raise ValidationError("A reason is required to override the status.")
        target = DealStatus(status)
        logger.warning(
            "admin.status_overridden",
            extra=build_log_event(
                "admin.status_overridden",
                self._context(deal, "override status"),
                from_status=DealStatus(deal.status).value,
                to_status=target.value,
                reason=reason,
            ),
        )
        return self._save(deal, forced_transition(deal, target, now=self._clock()), "override status")
