"""ORM models for the local deal store."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from roofline.core.enums import DealStatus
from roofline.database.db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Rep(Base):
    __tablename__ = "reps"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True)
    commission_level = Column(String)
    default_commission_percent = Column(Float)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class Pin(Base):
    """A door knocked on the map; becomes a deal once the homeowner is interested."""

    __tablename__ = "pins"

    id = Column(String, primary_key=True, default=_new_id)
    rep_id = Column(String, ForeignKey("reps.id"))
    homeowner_name = Column(String)
    homeowner_phone = Column(String)
    homeowner_email = Column(String)
    address = Column(String)
    city = Column(String)
    state = Column(String)
    zip_code = Column(String)
    notes = Column(Text)
    deal_id = Column(String, ForeignKey("deals.id"))
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    rep = relationship("Rep")


class DealRecord(Base):
    __tablename__ = "deals"
    __table_args__ = (
        Index("idx_deals_status", "status"),
        Index("idx_deals_rep_id", "rep_id"),
    )

    id = Column(String, primary_key=True, default=_new_id)
    status = Column(String, nullable=False, default=DealStatus.LEAD.value)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)
    rep_id = Column(String, ForeignKey("reps.id"))
    rep_name = Column(String)

    homeowner_name = Column(String)
    homeowner_phone = Column(String)
    homeowner_email = Column(String)
    address = Column(String)
    city = Column(String)
    state = Column(String)
    zip_code = Column(String)
    roof_type = Column(String)
    roof_squares = Column(Float)
    notes = Column(Text)

    insurance_company = Column(String)
    policy_number = Column(String)
    claim_number = Column(String)
    date_of_loss = Column(Date)
    date_type = Column(String)
    inspection_date = Column(Date)
    adjuster_name = Column(String)
    adjuster_phone = Column(String)
    adjuster_email = Column(String)
    adjuster_meeting_date = Column(DateTime)
    adjuster_notes = Column(Text)
    adjuster_not_assigned = Column(Boolean, default=False, nullable=False)

    rcv = Column(Float)
    acv = Column(Float)
    deductible = Column(Float)
    depreciation = Column(Float)

    approval_type = Column(String)
    approved_date = Column(DateTime)

    material_category = Column(String)
    material_type = Column(String)
    material_color = Column(String)
    drip_edge = Column(String)
    vent_color = Column(String)

    lost_statement_url = Column(String)
    insurance_agreement_url = Column(String)
    agreement_document_url = Column(String)
    signature_url = Column(String)
    acv_receipt_url = Column(String)
    deductible_receipt_url = Column(String)
    depreciation_receipt_url = Column(String)
    permit_file_url = Column(String)
    invoice_url = Column(String)
    invoice_amount = Column(Float)
    completion_form_url = Column(String)
    completion_form_signature_url = Column(String)
    homeowner_completion_signature_url = Column(String)
    inspection_images = Column(JSON)
    install_images = Column(JSON)
    completion_images = Column(JSON)

    contract_signed = Column(Boolean, default=False, nullable=False)
    signed_date = Column(Date)
    completion_signed_date = Column(DateTime)

    claim_filed_date = Column(DateTime)
    awaiting_approval_date = Column(DateTime)
    acv_collected_date = Column(DateTime)
    deductible_collected_date = Column(DateTime)
    materials_selected_date = Column(DateTime)
    install_date = Column(Date)
    installed_date = Column(DateTime)
    invoice_sent_date = Column(Date)
    depreciation_collected_date = Column(DateTime)
    complete_date = Column(DateTime)

    commission_override_amount = Column(Float)
    commission_override_reason = Column(Text)
    commission_override_date = Column(DateTime)
    commission_paid = Column(Boolean, default=False, nullable=False)
    commission_paid_date = Column(Date)
    payment_requested = Column(Boolean, default=False, nullable=False)

    rep = relationship("Rep")
    deal_commissions = relationship(
        "DealCommissionRecord",
        back_populates="deal",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class DealCommissionRecord(Base):
    __tablename__ = "deal_commissions"
    __table_args__ = (Index("idx_deal_commissions_deal_id", "deal_id"),)

    id = Column(String, primary_key=True, default=_new_id)
    deal_id = Column(String, ForeignKey("deals.id"), nullable=False)
    rep_id = Column(String, ForeignKey("reps.id"))
    commission_type = Column(String)
    commission_percent = Column(Float)
    commission_amount = Column(Float)
    paid = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    deal = relationship("DealRecord", back_populates="deal_commissions")
