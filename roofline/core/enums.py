"""Canonical enum values shared with the admin-side system.

Status literals are a wire-level contract: they are persisted as-is and
must match the backend's ``deal_status`` type exactly.
"""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    REP = "rep"
    CREW = "crew"


class DealStatus(str, enum.Enum):
    """Pipeline stages in their fixed order."""

    LEAD = "lead"
    INSPECTION_SCHEDULED = "inspection_scheduled"
    CLAIM_FILED = "claim_filed"
    ADJUSTER_MET = "adjuster_met"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"
    ACV_COLLECTED = "acv_collected"
    DEDUCTIBLE_COLLECTED = "deductible_collected"
    MATERIALS_SELECTED = "materials_selected"
    INSTALL_SCHEDULED = "install_scheduled"
    INSTALLED = "installed"
    COMPLETION_SIGNED = "completion_signed"
    INVOICE_SENT = "invoice_sent"
    DEPRECIATION_COLLECTED = "depreciation_collected"
    COMPLETE = "complete"
    PAID = "paid"


class DealPhase(str, enum.Enum):
    """Coarse grouping of stages for dashboards and pipeline boards."""

    SIGN = "sign"
    BUILD = "build"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


class ApprovalType(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    SUPPLEMENT_NEEDED = "supplement_needed"
    SALE = "sale"


class CommissionLevel(str, enum.Enum):
    JUNIOR = "junior"
    SENIOR = "senior"
    MANAGER = "manager"


class MaterialCategory(str, enum.Enum):
    SHINGLE = "Shingle"
    ARCHITECTURAL = "Architectural"
    METAL = "Metal"
    ARCHITECTURAL_METAL = "Architectural Metal"


METAL_CATEGORIES = frozenset({MaterialCategory.METAL.value, MaterialCategory.ARCHITECTURAL_METAL.value})


class FieldType(str, enum.Enum):
    TEXT = "text"
    DATE = "date"
    PHONE = "phone"
    EMAIL = "email"
    NUMBER = "number"


class DocumentCategory(str, enum.Enum):
    """Upload categories understood by the file collaborator."""

    LOST_STATEMENT = "lost-statement"
    INSURANCE_AGREEMENT = "insurance-agreement"
    AGREEMENT = "agreement"
    ACV_RECEIPT = "acv-receipt"
    DEDUCTIBLE_RECEIPT = "deductible-receipt"
    DEPRECIATION_RECEIPT = "depreciation-receipt"
    PERMIT = "permit"
    INVOICE = "invoice"
    COMPLETION_FORM = "completion-form"
    SIGNATURE = "signature"


class NoticeLevel(str, enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
