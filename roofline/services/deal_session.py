"""Screen-owned editing state for one deal.

Pending edits live here until they are saved, either one field at a time
by autosave or all together by Save & Continue. Gate checks always look
at the persisted deal with the pending edits layered on top.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Literal

from roofline.clients.deals_api import FilesGateway
from roofline.core.enums import DealStatus
from roofline.core.exceptions import PersistenceError, ServiceError, ValidationError
from roofline.schemas.common import Notice
from roofline.schemas.deals import DEAL_FIELDS, Deal, merge_pending
from roofline.services.autosave import AutosaveScheduler, Scheduler
from roofline.services.deal_service import DealService, SaveResult
from roofline.services.signatures import AgreementFlow, CompletionFormFlow, FlowResult
from roofline.workflow.requirements import is_stage_satisfied, missing_requirements
from roofline.workflow.state_machine import STATUS_IS_DERIVED
from roofline.workflow.steps import WorkflowStepDefinition, get_step

logger = logging.getLogger(__name__)

AutosaveStatus = Literal["idle", "pending", "saving", "saved", "error"]


@dataclass
class SessionState:
    pending: dict[str, Any] = field(default_factory=dict)
    saving: bool = False
    autosave_status: AutosaveStatus = "idle"
    notices: list[Notice] = field(default_factory=list)


class DealEditSession:
    def __init__(
        self,
        deal: Deal,
        service: DealService,
        files: FilesGateway | None = None,
        scheduler: Scheduler | None = None,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.deal = deal
        self.service = service
        self.files = files or service.files
        self.state = SessionState()
        self.flow: AgreementFlow | CompletionFormFlow | None = None
        self._lock = threading.RLock()
        self._closed = False
        self.autosave = AutosaveScheduler(
            self._autosave_persist,
            scheduler=scheduler,
            delays=delays,
            on_saved=self._autosave_saved,
            on_error=self._autosave_failed,
        )

    @property
    def step(self) -> WorkflowStepDefinition:
        return get_step(self.deal.status)

    def merged(self) -> Deal:
        with self._lock:
            return merge_pending(self.deal, self.state.pending)

    def can_advance(self) -> bool:
        step = self.step
        return bool(step.requirements) and is_stage_satisfied(self.merged(), step)

    def missing(self) -> list[str]:
        return missing_requirements(self.merged(), self.step)

    def _notify(self, notice: Notice) -> Notice:
        with self._lock:
            self.state.notices.append(notice)
        return notice

    def request_status(self, status: DealStatus | str) -> Notice:
        """Reps cannot pick a status; answer with an explanation instead."""
        logger.info(
            "session.status_request_ignored",
            extra={"event": "session.status_request_ignored", "deal_id": self.deal.id, "status": str(status)},
        )
        return self._notify(Notice.info(STATUS_IS_DERIVED))

    def edit(self, field_name: str, value: Any, autosave_group: str | None = None) -> None:
        if self._closed:
            raise ServiceError("This editing session is closed.")
        if field_name == "status":
            self.request_status(value)
            return
        if field_name not in DEAL_FIELDS or field_name == "id":
            raise ValidationError(f"Unknown deal field: {field_name}")
        with self._lock:
            self.state.pending[field_name] = value
        if autosave_group is not None and self.autosave.schedule(autosave_group, {field_name: value}):
            with self._lock:
                self.state.autosave_status = "pending"

    def _autosave_persist(self, fields: dict[str, Any]) -> SaveResult:
        with self._lock:
            self.state.autosave_status = "saving"
            deal = self.deal
        return self.service.save_fields(deal, fields, advance=False)

    def _settle(self, fields: dict[str, Any], deal: Deal) -> None:
        # Keep edits made while the save was in flight.
        self.deal = deal
        for name, value in fields.items():
            if name in self.state.pending and self.state.pending[name] is value:
                del self.state.pending[name]

    def _autosave_saved(self, group: str, fields: dict[str, Any], result: SaveResult) -> None:
        with self._lock:
            self._settle(fields, result.deal)
            self.state.autosave_status = "saved"
            self.state.notices.extend(result.notices)

    def _autosave_failed(self, group: str, exc: Exception) -> None:
        with self._lock:
            self.state.autosave_status = "error"

    def save_and_continue(self) -> SaveResult:
        """Commit every pending edit in one gated update."""
        if self._closed:
            raise ServiceError("This editing session is closed.")
        with self._lock:
            if self.state.saving:
                raise ServiceError("A save is already in progress.")
            self.state.saving = True
            payload = dict(self.state.pending)
            deal = self.deal
        try:
            result = self.service.save_fields(deal, payload)
        except PersistenceError as exc:
            with self._lock:
                self.state.saving = False
                self.state.notices.append(Notice.error(str(exc)))
            raise
        except Exception:
            with self._lock:
                self.state.saving = False
            raise
        with self._lock:
            self._settle(payload, result.deal)
            self.state.saving = False
            self.state.notices.extend(result.notices)
        return result

    def _snapshot(self) -> tuple[Deal, dict[str, Any]]:
        with self._lock:
            return self.deal, dict(self.state.pending)

    def _flow_completed(self, result: FlowResult) -> None:
        with self._lock:
            self._settle(result.pending, result.deal)
            self.state.notices.extend(result.decision.notices)
            self.flow = None

    def _start_flow(self, flow_cls: type[AgreementFlow] | type[CompletionFormFlow]):
        if self._closed:
            raise ServiceError("This editing session is closed.")
        if self.files is None:
            raise ServiceError("No file storage configured.")
        if self.flow is not None:
            self.flow.cancel()
        self.flow = flow_cls(
            self.deal,
            self.service.deals,
            self.files,
            clock=self.service.clock,
            on_complete=self._flow_completed,
            deal_provider=self._snapshot,
        )
        return self.flow

    def start_agreement(self) -> AgreementFlow:
        return self._start_flow(AgreementFlow)

    def start_completion_form(self) -> CompletionFormFlow:
        if DealStatus(self.deal.status) != DealStatus.INSTALLED:
            raise ValidationError("The completion form is signed once the install is done.")
        return self._start_flow(CompletionFormFlow)

    def close(self) -> None:
        """Leave the screen: pending timers and unfinished signatures are dropped."""
        if self._closed:
            return
        self._closed = True
        discarded = self.autosave.cancel()
        self.autosave.close(flush=False)
        if self.flow is not None:
            self.flow.cancel()
            self.flow = None
        logger.info(
            "session.closed",
            extra={"event": "session.closed", "deal_id": self.deal.id, "discarded": sorted(discarded)},
        )
