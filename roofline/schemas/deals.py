"""Deal snapshot schemas shared by the workflow core and its collaborators."""

from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from roofline.core.enums import ApprovalType, CommissionLevel, DealStatus

FINANCIAL_FIELDS = ("rcv", "acv", "deductible", "depreciation")


class DealCommission(BaseModel):
    """Denormalized commission record as served by the backend."""

    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str | None = None
    rep_id: str | None = None
    commission_type: str | None = None
    commission_percent: float | None = None
    commission_amount: float | None = None
    paid: bool = False


class RepProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: str | None = None
    name: str | None = None
    commission_level: CommissionLevel | None = None
    default_commission_percent: float | None = None


class Deal(BaseModel):
    """A full or partial deal record.

    Every field but ``id`` and ``status`` may be missing; presence of a
    value is what the requirement gate checks.
    """

    model_config = ConfigDict(from_attributes=True, extra="ignore", use_enum_values=False)

    id: str
    status: DealStatus = DealStatus.LEAD
    created_at: datetime | None = None
    updated_at: datetime | None = None
    rep_id: str | None = None
    rep_name: str | None = None

    homeowner_name: str | None = None
    homeowner_phone: str | None = None
    homeowner_email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    roof_type: str | None = None
    roof_squares: float | None = None
    notes: str | None = None

    insurance_company: str | None = None
    policy_number: str | None = None
    claim_number: str | None = None
    date_of_loss: date | None = None
    date_type: str | None = None
    inspection_date: date | None = None
    adjuster_name: str | None = None
    adjuster_phone: str | None = None
    adjuster_email: str | None = None
    adjuster_meeting_date: datetime | None = None
    adjuster_notes: str | None = None
    adjuster_not_assigned: bool = False

    rcv: float | None = None
    acv: float | None = None
    deductible: float | None = None
    depreciation: float | None = None

    approval_type: ApprovalType | None = None
    approved_date: datetime | None = None

    material_category: str | None = None
    material_type: str | None = None
    material_color: str | None = None
    drip_edge: str | None = None
    vent_color: str | None = None

    lost_statement_url: str | None = None
    insurance_agreement_url: str | None = None
    agreement_document_url: str | None = None
    signature_url: str | None = None
    acv_receipt_url: str | None = None
    deductible_receipt_url: str | None = None
    depreciation_receipt_url: str | None = None
    permit_file_url: str | None = None
    invoice_url: str | None = None
    invoice_amount: float | None = None
    completion_form_url: str | None = None
    completion_form_signature_url: str | None = None
    homeowner_completion_signature_url: str | None = None
    inspection_images: list[str] | None = None
    install_images: list[str] | None = None
    completion_images: list[str] | None = None

    contract_signed: bool = False
    signed_date: date | None = None
    completion_signed_date: datetime | None = None

    claim_filed_date: datetime | None = None
    awaiting_approval_date: datetime | None = None
    acv_collected_date: datetime | None = None
    deductible_collected_date: datetime | None = None
    materials_selected_date: datetime | None = None
    install_date: date | None = None
    installed_date: datetime | None = None
    invoice_sent_date: date | None = None
    depreciation_collected_date: datetime | None = None
    complete_date: datetime | None = None

    commission_override_amount: float | None = None
    commission_override_reason: str | None = None
    commission_override_date: datetime | None = None
    commission_paid: bool = False
    commission_paid_date: date | None = None
    payment_requested: bool = False
    deal_commissions: list[DealCommission] = Field(default_factory=list)

    @field_validator(
        "roof_squares",
        "rcv",
        "acv",
        "deductible",
        "depreciation",
        "invoice_amount",
        "commission_override_amount",
        "date_of_loss",
        "inspection_date",
        "adjuster_meeting_date",
        "approved_date",
        "signed_date",
        "install_date",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        # Form inputs arrive as "" when cleared.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def commission_record(self) -> DealCommission | None:
        return self.deal_commissions[0] if self.deal_commissions else None

    @property
    def financials_locked(self) -> bool:
        return self.approved_date is not None


DEAL_FIELDS = frozenset(Deal.model_fields)


def merge_pending(deal: Deal, pending: dict[str, Any]) -> Deal:
    """Layer in-memory edits over a persisted snapshot.

    Gate checks must always run against this merged view, never the stale
    persisted record.
    """
    if not pending:
        return deal
    data = deal.model_dump()
    data.update({key: value for key, value in pending.items() if key in DEAL_FIELDS})
    return Deal.model_validate(data)


def to_wire(fields: dict[str, Any]) -> dict[str, Any]:
    """Serialize a partial update to JSON-safe values."""
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, (date, datetime)):
            payload[key] = value.isoformat()
        elif isinstance(value, enum.Enum):
            payload[key] = value.value
        else:
            payload[key] = value
    return payload
