"""Static workflow table: stage order, labels and what each stage needs.

A step's ``requirements`` gate leaving that stage. ``admin_only`` marks a
stage whose entry is an admin action; reps can fill in everything the
previous stage needs but the deal waits there for the back office.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from roofline.core.enums import DealPhase, DealStatus, FieldType
from roofline.schemas.deals import DEAL_FIELDS, FINANCIAL_FIELDS


@dataclass(frozen=True)
class FieldRequirement:
    field: str
    label: str
    type: FieldType = FieldType.TEXT
    kind: Literal["field"] = "field"

    @property
    def fields(self) -> tuple[str, ...]:
        return (self.field,)


@dataclass(frozen=True)
class AdjusterRequirement:
    """A field that is waived when no adjuster has been assigned yet."""

    field: str
    label: str
    type: FieldType = FieldType.TEXT
    kind: Literal["adjuster"] = "adjuster"

    @property
    def fields(self) -> tuple[str, ...]:
        return (self.field, "adjuster_not_assigned")


@dataclass(frozen=True)
class DocumentRequirement:
    field: str
    label: str
    kind: Literal["document"] = "document"

    @property
    def fields(self) -> tuple[str, ...]:
        return (self.field,)


@dataclass(frozen=True)
class SignatureRequirement:
    """Signed in-app (``signed_field``) or a manual upload (``document_field``)."""

    signed_field: str
    document_field: str
    label: str
    kind: Literal["signature"] = "signature"

    @property
    def fields(self) -> tuple[str, ...]:
        return (self.signed_field, self.document_field)


@dataclass(frozen=True)
class FinancialsRequirement:
    label: str = "RCV, ACV, deductible and depreciation"
    kind: Literal["financials"] = "financials"

    @property
    def fields(self) -> tuple[str, ...]:
        return FINANCIAL_FIELDS


@dataclass(frozen=True)
class MaterialRequirement:
    """Metal roofs need a metal type; everything else needs a colour."""

    label: str = "Material type or color"
    kind: Literal["material"] = "material"

    @property
    def fields(self) -> tuple[str, ...]:
        return ("material_category", "material_type", "material_color")


Requirement = Union[
    FieldRequirement,
    AdjusterRequirement,
    DocumentRequirement,
    SignatureRequirement,
    FinancialsRequirement,
    MaterialRequirement,
]


@dataclass(frozen=True)
class WorkflowStepDefinition:
    status: DealStatus
    position: int
    label: str
    description: str
    requirements: tuple[Requirement, ...] = ()
    admin_only: bool = False
    milestone_field: str | None = None
    phase: DealPhase = DealPhase.SIGN


_STEPS: list[tuple] = [
    (
        DealStatus.LEAD,
        "Schedule & Complete Inspection",
        "Take inspection photos and show the homeowner the report",
        (),
        False,
        None,
    ),
    (
        DealStatus.INSPECTION_SCHEDULED,
        "File Claim & Sign Agreement",
        "Call insurance, get adjuster info, sign the agreement with the homeowner",
        (
            FieldRequirement("insurance_company", "Insurance Company"),
            FieldRequirement("policy_number", "Policy Number"),
            FieldRequirement("claim_number", "Claim Number"),
            FieldRequirement("date_of_loss", "Date of Loss", FieldType.DATE),
            FieldRequirement("adjuster_name", "Adjuster Name"),
            SignatureRequirement("contract_signed", "insurance_agreement_url", "Signed Agreement"),
        ),
        False,
        "inspection_date",
    ),
    (
        DealStatus.CLAIM_FILED,
        "Meet Adjuster & Upload Loss Statement",
        "Meet the adjuster, then enter the claim numbers from the loss statement",
        (
            FinancialsRequirement(),
            DocumentRequirement("lost_statement_url", "Loss Statement"),
            AdjusterRequirement("adjuster_phone", "Adjuster Phone", FieldType.PHONE),
            AdjusterRequirement("adjuster_meeting_date", "Adjuster Appointment Date", FieldType.DATE),
        ),
        False,
        "claim_filed_date",
    ),
    (
        DealStatus.ADJUSTER_MET,
        "Record Adjuster Meeting",
        "Note what the adjuster reviewed on the roof",
        (FieldRequirement("adjuster_notes", "Adjuster Meeting Notes"),),
        False,
        None,
    ),
    (
        DealStatus.AWAITING_APPROVAL,
        "Awaiting Admin Approval",
        "Wait for the admin to review and approve the financials",
        (),
        False,
        "awaiting_approval_date",
    ),
    (
        DealStatus.APPROVED,
        "Collect ACV Payment",
        "Collect the ACV check from the homeowner and give them a receipt",
        (DocumentRequirement("acv_receipt_url", "ACV Receipt"),),
        True,
        "approved_date",
    ),
    (
        DealStatus.ACV_COLLECTED,
        "Collect Deductible",
        "Collect the deductible from the homeowner and give them a receipt",
        (DocumentRequirement("deductible_receipt_url", "Deductible Receipt"),),
        False,
        "acv_collected_date",
    ),
    (
        DealStatus.DEDUCTIBLE_COLLECTED,
        "Select Materials",
        "Pick roof materials and colors with the homeowner",
        (
            FieldRequirement("material_category", "Material Category"),
            MaterialRequirement(),
        ),
        False,
        "deductible_collected_date",
    ),
    (
        DealStatus.MATERIALS_SELECTED,
        "Ready for Install",
        "All info collected, waiting for admin to schedule the install",
        (),
        False,
        "materials_selected_date",
    ),
    (
        DealStatus.INSTALL_SCHEDULED,
        "Installation In Progress",
        "Crew is installing and will upload progress and completion photos",
        (),
        True,
        "install_date",
    ),
    (
        DealStatus.INSTALLED,
        "Get Completion Signature",
        "Have the homeowner sign the installation completion form",
        (SignatureRequirement("completion_signed_date", "completion_form_url", "Completion Form"),),
        True,
        "installed_date",
    ),
    (
        DealStatus.COMPLETION_SIGNED,
        "Invoice Sent",
        "Final invoice goes to the insurance company for depreciation",
        (),
        False,
        "completion_signed_date",
    ),
    (
        DealStatus.INVOICE_SENT,
        "Collect Depreciation",
        "Collect the depreciation payment, give receipt and roof certificate",
        (DocumentRequirement("depreciation_receipt_url", "Depreciation Receipt"),),
        True,
        "invoice_sent_date",
    ),
    (
        DealStatus.DEPRECIATION_COLLECTED,
        "Request Commission",
        "All payments collected, request your commission",
        (),
        False,
        "depreciation_collected_date",
    ),
    (
        DealStatus.COMPLETE,
        "Waiting for Commission",
        "Waiting for admin to approve the commission payment",
        (),
        True,
        "complete_date",
    ),
    (
        DealStatus.PAID,
        "Paid",
        "Commission has been paid",
        (),
        True,
        "commission_paid_date",
    ),
]

_PHASES: dict[DealStatus, DealPhase] = {
    DealStatus.LEAD: DealPhase.SIGN,
    DealStatus.INSPECTION_SCHEDULED: DealPhase.SIGN,
    DealStatus.CLAIM_FILED: DealPhase.SIGN,
    DealStatus.ADJUSTER_MET: DealPhase.SIGN,
    DealStatus.AWAITING_APPROVAL: DealPhase.SIGN,
    DealStatus.APPROVED: DealPhase.SIGN,
    DealStatus.ACV_COLLECTED: DealPhase.BUILD,
    DealStatus.DEDUCTIBLE_COLLECTED: DealPhase.BUILD,
    DealStatus.MATERIALS_SELECTED: DealPhase.BUILD,
    DealStatus.INSTALL_SCHEDULED: DealPhase.BUILD,
    DealStatus.INSTALLED: DealPhase.BUILD,
    DealStatus.COMPLETION_SIGNED: DealPhase.BUILD,
    DealStatus.INVOICE_SENT: DealPhase.FINALIZING,
    DealStatus.DEPRECIATION_COLLECTED: DealPhase.FINALIZING,
    DealStatus.COMPLETE: DealPhase.COMPLETE,
    DealStatus.PAID: DealPhase.COMPLETE,
}

PHASE_LABELS: dict[DealPhase, str] = {
    DealPhase.SIGN: "Signed",
    DealPhase.BUILD: "Install Review",
    DealPhase.FINALIZING: "Finalizing",
    DealPhase.COMPLETE: "Complete",
}

WORKFLOW_STEPS: tuple[WorkflowStepDefinition, ...] = tuple(
    WorkflowStepDefinition(
        status=status,
        position=index,
        label=label,
        description=description,
        requirements=requirements,
        admin_only=admin_only,
        milestone_field=milestone_field,
        phase=_PHASES[status],
    )
    for index, (status, label, description, requirements, admin_only, milestone_field) in enumerate(_STEPS)
)

STEPS_BY_STATUS: dict[DealStatus, WorkflowStepDefinition] = {step.status: step for step in WORKFLOW_STEPS}


def _check_table() -> None:
    if [step.status for step in WORKFLOW_STEPS] != list(DealStatus):
        raise RuntimeError("Workflow table is out of sync with DealStatus.")
    for step in WORKFLOW_STEPS:
        names = [name for req in step.requirements for name in req.fields]
        if step.milestone_field:
            names.append(step.milestone_field)
        unknown = [name for name in names if name not in DEAL_FIELDS]
        if unknown:
            raise RuntimeError(f"Step {step.status.value} references unknown deal fields: {unknown}")


_check_table()


def get_step(status: DealStatus | str) -> WorkflowStepDefinition:
    return STEPS_BY_STATUS[DealStatus(status)]


def position_of(status: DealStatus | str) -> int:
    return get_step(status).position


def next_step(status: DealStatus | str) -> WorkflowStepDefinition | None:
    position = position_of(status) + 1
    if position >= len(WORKFLOW_STEPS):
        return None
    return WORKFLOW_STEPS[position]


def progress_percent(status: DealStatus | str) -> int:
    return round((position_of(status) + 1) / len(WORKFLOW_STEPS) * 100)


def phase_for_status(status: DealStatus | str) -> DealPhase:
    return get_step(status).phase


def statuses_by_phase(phase: DealPhase | str) -> list[DealStatus]:
    """Stages of ``phase`` in workflow order."""
    phase = DealPhase(phase)
    return [step.status for step in WORKFLOW_STEPS if step.phase == phase]
