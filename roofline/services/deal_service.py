"""Rep-facing deal operations.

Every rep write goes through :func:`evaluate_update` so status is only
ever derived from what the deal contains.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from roofline.clients.deals_api import DealsGateway, FilesGateway
from roofline.core.enums import DealStatus, DocumentCategory, UserRole
from roofline.core.exceptions import PersistenceError, RooflineException, ServiceError, ValidationError
from roofline.schemas.common import Notice
from roofline.schemas.deals import Deal, RepProfile
from roofline.services.financials import CommissionBreakdown, calculate_commission
from roofline.utils.validators import sanitize_filename
from roofline.workflow.state_machine import WorkflowDecision, evaluate_update, inspection_photos_uploaded

logger = logging.getLogger(__name__)

# Where each uploaded document lands on the deal.
DOCUMENT_FIELDS: dict[DocumentCategory, str] = {
    DocumentCategory.LOST_STATEMENT: "lost_statement_url",
    DocumentCategory.INSURANCE_AGREEMENT: "insurance_agreement_url",
    DocumentCategory.ACV_RECEIPT: "acv_receipt_url",
    DocumentCategory.DEDUCTIBLE_RECEIPT: "deductible_receipt_url",
    DocumentCategory.DEPRECIATION_RECEIPT: "depreciation_receipt_url",
    DocumentCategory.PERMIT: "permit_file_url",
    DocumentCategory.COMPLETION_FORM: "completion_form_url",
}


@dataclass
class SaveResult:
    deal: Deal
    decision: WorkflowDecision
    notices: list[Notice] = field(default_factory=list)

    @property
    def advanced(self) -> bool:
        return self.decision.advanced


class DealService:
    """Gated reads and writes for a field rep."""

    def __init__(
        self,
        deals: DealsGateway,
        files: FilesGateway | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.deals = deals
        self.files = files
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def get_deal(self, deal_id: str) -> Deal:
        return self.deals.get(deal_id)

    def create_from_pin(self, pin_id: str) -> Deal:
        if not pin_id:
            raise ValidationError("pin_id is required")
        return self._call("create deal", self.deals.create_from_pin, pin_id)

    def _call(self, action: str, fn: Callable[..., Deal], *args: Any) -> Deal:
        try:
            return fn(*args)
        except RooflineException:
            raise
        except Exception as exc:
            raise PersistenceError(action, str(exc)) from exc

    def _persist(self, deal: Deal, decision: WorkflowDecision, action: str) -> SaveResult:
        if not decision.has_changes:
            return SaveResult(deal=deal, decision=decision, notices=list(decision.notices))
        saved = self._call(action, self.deals.update, deal.id, decision.updates)
        if decision.advanced:
            logger.info(
                "deal.status_advanced",
                extra={
                    "event": "deal.status_advanced",
                    "deal_id": deal.id,
                    "role": UserRole.REP.value,
                    "from_status": decision.from_status.value,
                    "to_status": decision.to_status.value,
                },
            )
        return SaveResult(deal=saved, decision=decision, notices=list(decision.notices))

    def save_fields(self, deal: Deal, fields: dict[str, Any], advance: bool = True) -> SaveResult:
        """Persist a partial edit; the deal moves forward when its stage is satisfied."""
        decision = evaluate_update(deal, fields, now=self.clock(), advance=advance)
        return self._persist(deal, decision, "save deal")

    def record_inspection_photos(self, deal: Deal, image_keys: list[str]) -> SaveResult:
        if not any(image_keys):
            raise ValidationError("At least one inspection photo is required.")
        decision = inspection_photos_uploaded(deal, image_keys, now=self.clock())
        return self._persist(deal, decision, "save inspection photos")

    def upload_document(
        self,
        deal: Deal,
        kind: DocumentCategory | str,
        data: bytes,
        name: str,
        mime_type: str,
    ) -> SaveResult:
        """Upload a file and store its key on the deal through the gated path."""
        kind = DocumentCategory(kind)
        target = DOCUMENT_FIELDS.get(kind)
        if target is None:
            raise ValidationError(f"{kind.value} documents are not uploaded by reps.")
        if self.files is None:
            raise ServiceError("No file storage configured.")
        if not data:
            raise ValidationError("The file is empty.")

        action = f"upload {kind.value.replace('-', ' ')}"
        try:
            key = self.files.upload_file(data, sanitize_filename(name), mime_type, kind.value, deal.id)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(action, str(exc)) from exc
        if not key:
            raise PersistenceError(action, "the upload was rejected")
        return self.save_fields(deal, {target: key})

    def request_payment(self, deal: Deal) -> SaveResult:
        if DealStatus(deal.status) != DealStatus.DEPRECIATION_COLLECTED:
            raise ValidationError("Payment can only be requested once depreciation is collected.")
        if deal.payment_requested:
            decision = WorkflowDecision(deal_id=deal.id, from_status=deal.status, to_status=deal.status)
            decision.notices.append(Notice.info("Payment was already requested."))
            return SaveResult(deal=deal, decision=decision, notices=list(decision.notices))
        result = self.save_fields(deal, {"payment_requested": True})
        result.notices.append(Notice.success("Payment requested. An admin will review it."))
        logger.info("deal.payment_requested", extra={"event": "deal.payment_requested", "deal_id": deal.id})
        return result

    def commission_for(self, deal: Deal, rep: RepProfile | None = None) -> CommissionBreakdown:
        if rep is None and deal.rep_id:
            rep = self.deals.get_rep(deal.rep_id)
        return calculate_commission(deal, rep)
