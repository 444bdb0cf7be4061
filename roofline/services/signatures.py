"""Stepped multi-signature capture.

A :class:`SignatureSequencer` walks an ordered list of slots. State 0 is
the reading / data-entry screen; state ``k`` captures slot ``k``. Captured
images stay in memory until the last slot, so cancelling at any point
leaves nothing behind on the deal. Sessions never resume: reopening a
flow starts again at slot 1.

:class:`AgreementFlow` (6 slots) and :class:`CompletionFormFlow` (4 slots)
add the finalization side effects: upload every artifact, assemble one
document, and persist everything with a single gated update.
"""

from __future__ import annotations

import base64
import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Protocol

from roofline.clients.deals_api import DealsGateway, FilesGateway
from roofline.core.enums import DocumentCategory
from roofline.core.exceptions import PersistenceError, SignatureSequenceError
from roofline.schemas.deals import Deal
from roofline.workflow.state_machine import WorkflowDecision, evaluate_update

logger = logging.getLogger(__name__)

SignatureKind = Literal["initials", "signature"]
Signer = Literal["owner", "rep"]


@dataclass(frozen=True)
class SignatureSlot:
    key: str
    label: str
    kind: SignatureKind
    signer: Signer


@dataclass(frozen=True)
class SignatureArtifact:
    slot: SignatureSlot
    image: bytes
    captured_at: datetime


AGREEMENT_SLOTS: tuple[SignatureSlot, ...] = (
    SignatureSlot("fee_initials", "Fee acknowledgment initials", "initials", "owner"),
    SignatureSlot("rep_signature", "Representative signature", "signature", "rep"),
    SignatureSlot("owner_signature", "Owner signature", "signature", "owner"),
    SignatureSlot("decking_initials", "Decking fee initials", "initials", "owner"),
    SignatureSlot("construction_signature", "Notice of construction signature", "signature", "owner"),
    SignatureSlot("supplements_signature", "Supplements acknowledgment signature", "signature", "owner"),
)

COMPLETION_SLOTS: tuple[SignatureSlot, ...] = (
    SignatureSlot("section1_initials", "Section 1 initials", "initials", "owner"),
    SignatureSlot("section2_initials", "Section 2 initials", "initials", "owner"),
    SignatureSlot("owner_signature", "Owner signature", "signature", "owner"),
    SignatureSlot("rep_signature", "Representative signature", "signature", "rep"),
)

WALKTHROUGH_TYPES = ("with_homeowner", "photos_only")


class SignatureSequencer:
    """Sub-state machine over an ordered list of signature slots."""

    def __init__(self, slots: tuple[SignatureSlot, ...], prerequisites: tuple[str, ...] = ()) -> None:
        if not slots:
            raise ValueError("A signature sequence needs at least one slot.")
        self.slots = slots
        self.prerequisites = prerequisites
        self.values: dict[str, str] = {}
        self.state = 0
        self._artifacts: dict[str, SignatureArtifact] = {}

    @property
    def total(self) -> int:
        return len(self.slots)

    @property
    def current_slot(self) -> SignatureSlot | None:
        if 1 <= self.state <= self.total:
            return self.slots[self.state - 1]
        return None

    @property
    def is_complete(self) -> bool:
        return self.state > self.total

    @property
    def artifacts(self) -> dict[str, SignatureArtifact]:
        return dict(self._artifacts)

    def set_value(self, name: str, value: str) -> None:
        if name not in self.prerequisites:
            raise SignatureSequenceError(f"Unknown prerequisite: {name}")
        if self.state != 0:
            raise SignatureSequenceError("Prerequisites are edited before signing starts.")
        self.values[name] = value

    def missing_prerequisites(self) -> list[str]:
        return [name for name in self.prerequisites if not (self.values.get(name) or "").strip()]

    def begin(self) -> SignatureSlot:
        if self.state != 0:
            raise SignatureSequenceError("Signing already started.")
        missing = self.missing_prerequisites()
        if missing:
            raise SignatureSequenceError(f"Fill in {', '.join(missing)} before signing.")
        self.state = 1
        return self.slots[0]

    def capture(self, image: bytes) -> SignatureSlot | None:
        """Store the image for the current slot; returns the next slot or None when done."""
        slot = self.current_slot
        if slot is None:
            raise SignatureSequenceError("No signature is being captured.")
        if not image:
            raise SignatureSequenceError(f"{slot.label} is empty.")
        self._artifacts[slot.key] = SignatureArtifact(slot=slot, image=image, captured_at=datetime.now(timezone.utc))
        self.state += 1
        return self.current_slot

    def cancel(self) -> None:
        """Discard every captured artifact and return to the reading state."""
        self._artifacts.clear()
        self.state = 0


class DocumentAssembler(Protocol):
    def assemble(self, title: str, context: dict[str, Any], artifacts: dict[str, SignatureArtifact]) -> bytes: ...


class HtmlDocumentAssembler:
    """Self-contained HTML with every signature embedded as a data URI."""

    mime_type = "text/html"

    def assemble(self, title: str, context: dict[str, Any], artifacts: dict[str, SignatureArtifact]) -> bytes:
        rows = "".join(
            f"<tr><th>{html.escape(str(key))}</th><td>{html.escape(str(value))}</td></tr>"
            for key, value in context.items()
            if value not in (None, "")
        )
        images = "".join(
            "<figure>"
            f"<img alt=\"{html.escape(artifact.slot.label)}\" "
            f"src=\"data:image/png;base64,{base64.b64encode(artifact.image).decode('ascii')}\"/>"
            f"<figcaption>{html.escape(artifact.slot.label)} "
            f"({artifact.captured_at.strftime('%Y-%m-%d %H:%M UTC')})</figcaption>"
            "</figure>"
            for artifact in artifacts.values()
        )
        document = (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\"/>"
            f"<title>{html.escape(title)}</title></head><body>"
            f"<h1>{html.escape(title)}</h1><table>{rows}</table>{images}</body></html>"
        )
        return document.encode("utf-8")


@dataclass
class FlowResult:
    deal: Deal
    decision: WorkflowDecision
    keys: dict[str, str] = field(default_factory=dict)
    pending: dict[str, Any] = field(default_factory=dict)


class _SignatureFlow(ABC):
    """Shared finalization for the agreement and completion flows.

    ``deal_provider`` returns the latest persisted deal and the unsaved
    edits of the screen that opened the flow; the final update carries
    those edits so the gate sees the same merged view the rep does.
    """

    title = ""
    action = ""
    slots: tuple[SignatureSlot, ...] = ()
    prerequisites: tuple[str, ...] = ()
    document_category: DocumentCategory

    def __init__(
        self,
        deal: Deal,
        deals: DealsGateway,
        files: FilesGateway,
        assembler: DocumentAssembler | None = None,
        clock: Callable[[], datetime] | None = None,
        on_complete: Callable[[FlowResult], None] | None = None,
        deal_provider: Callable[[], tuple[Deal, dict[str, Any]]] | None = None,
    ) -> None:
        self.deal = deal
        self._deal_provider = deal_provider
        self._deals = deals
        self._files = files
        self._assembler = assembler or HtmlDocumentAssembler()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._on_complete = on_complete
        self.sequencer = SignatureSequencer(self.slots, self.prerequisites)
        self.result: FlowResult | None = None

    @property
    def state(self) -> int:
        return self.sequencer.state

    def begin(self) -> SignatureSlot:
        return self.sequencer.begin()

    def capture(self, image: bytes) -> SignatureSlot | None:
        upcoming = self.sequencer.capture(image)
        if upcoming is None:
            self.finalize()
        return upcoming

    def cancel(self) -> None:
        if self.result is not None:
            return
        captured = len(self.sequencer.artifacts)
        self.sequencer.cancel()
        logger.info(
            "signatures.cancelled",
            extra={"event": "signatures.cancelled", "deal_id": self.deal.id, "action": self.action, "captured": captured},
        )

    def _upload(self, data: bytes, name: str, mime_type: str, category: DocumentCategory) -> str:
        try:
            key = self._files.upload_file(data, name, mime_type, category.value, self.deal.id)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(self.action, str(exc)) from exc
        if not key:
            raise PersistenceError(self.action, f"upload of {name} was rejected")
        return key

    def _context(self) -> dict[str, Any]:
        return {
            "Homeowner": self.deal.homeowner_name,
            "Address": ", ".join(
                part for part in (self.deal.address, self.deal.city, self.deal.state, self.deal.zip_code) if part
            ),
            "Representative": self.deal.rep_name,
            "Insurance Company": self.deal.insurance_company,
            "Claim Number": self.deal.claim_number,
        }

    @abstractmethod
    def _fields(self, keys: dict[str, str], document_key: str, now: datetime) -> dict[str, Any]:
        """Deal fields written when the last slot is captured."""

    def finalize(self) -> FlowResult:
        """Upload, assemble and persist once; safe to call again after a failure."""
        if self.result is not None:
            return self.result
        if not self.sequencer.is_complete:
            raise SignatureSequenceError("Every signature is required before finishing.")

        pending: dict[str, Any] = {}
        if self._deal_provider is not None:
            self.deal, pending = self._deal_provider()
            pending = dict(pending)

        now = self._clock()
        stamp = now.strftime("%Y%m%d%H%M%S")
        artifacts = self.sequencer.artifacts
        keys = {
            slot_key: self._upload(
                artifact.image, f"{self.deal.id}/{slot_key}-{stamp}.png", "image/png", DocumentCategory.SIGNATURE
            )
            for slot_key, artifact in artifacts.items()
        }
        context = {**self._context(), **{name.replace("_", " ").title(): value for name, value in self.sequencer.values.items()}}
        document = self._assembler.assemble(self.title, context, artifacts)
        document_key = self._upload(
            document,
            f"{self.deal.id}/{self.action.replace(' ', '-').lower()}-{stamp}.html",
            getattr(self._assembler, "mime_type", "text/html"),
            self.document_category,
        )

        decision = evaluate_update(self.deal, {**pending, **self._fields(keys, document_key, now)}, now=now)
        try:
            saved = self._deals.update(self.deal.id, decision.updates)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(self.action, str(exc)) from exc

        logger.info(
            "signatures.completed",
            extra={
                "event": "signatures.completed",
                "deal_id": self.deal.id,
                "action": self.action,
                "status": decision.to_status.value,
            },
        )
        self.result = FlowResult(
            deal=saved, decision=decision, keys={**keys, "document": document_key}, pending=pending
        )
        if self._on_complete is not None:
            self._on_complete(self.result)
        return self.result


class AgreementFlow(_SignatureFlow):
    title = "Homeowner Agreement"
    action = "sign agreement"
    slots = AGREEMENT_SLOTS
    document_category = DocumentCategory.AGREEMENT

    def _fields(self, keys: dict[str, str], document_key: str, now: datetime) -> dict[str, Any]:
        return {
            "contract_signed": True,
            "signed_date": now.date(),
            "agreement_document_url": document_key,
            "signature_url": keys["owner_signature"],
        }


class CompletionFormFlow(_SignatureFlow):
    title = "Installation Completion Form"
    action = "sign completion form"
    slots = COMPLETION_SLOTS
    prerequisites = ("crew_lead_name", "walkthrough_type")
    document_category = DocumentCategory.COMPLETION_FORM

    def set_crew_lead(self, name: str) -> None:
        self.sequencer.set_value("crew_lead_name", name.strip())

    def set_walkthrough_type(self, value: str) -> None:
        if value not in WALKTHROUGH_TYPES:
            raise SignatureSequenceError(f"Walkthrough type must be one of: {', '.join(WALKTHROUGH_TYPES)}")
        self.sequencer.set_value("walkthrough_type", value)

    def _fields(self, keys: dict[str, str], document_key: str, now: datetime) -> dict[str, Any]:
        return {
            "completion_form_url": document_key,
            "homeowner_completion_signature_url": keys["owner_signature"],
            "completion_form_signature_url": keys["rep_signature"],
            "completion_signed_date": now,
        }
