"""Requirement gate: is a deal ready to leave its current stage?"""

from __future__ import annotations

from typing import Any, Callable

from roofline.core.enums import METAL_CATEGORIES
from roofline.schemas.deals import FINANCIAL_FIELDS, Deal
from roofline.workflow.steps import (
    AdjusterRequirement,
    DocumentRequirement,
    FieldRequirement,
    FinancialsRequirement,
    MaterialRequirement,
    Requirement,
    SignatureRequirement,
    WorkflowStepDefinition,
)

# Stored as the adjuster phone when no adjuster is assigned.
ADJUSTER_NOT_ASSIGNED = "N/A"


def is_present(value: Any) -> bool:
    """A value counts when it is not None and not an empty string."""
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def _field_satisfied(deal: Deal, req: FieldRequirement) -> bool:
    return is_present(getattr(deal, req.field))


def _adjuster_satisfied(deal: Deal, req: AdjusterRequirement) -> bool:
    if deal.adjuster_not_assigned:
        return True
    value = getattr(deal, req.field)
    if value == ADJUSTER_NOT_ASSIGNED:
        return False
    return is_present(value)


def _document_satisfied(deal: Deal, req: DocumentRequirement) -> bool:
    return is_present(getattr(deal, req.field))


def _signature_satisfied(deal: Deal, req: SignatureRequirement) -> bool:
    signed = getattr(deal, req.signed_field)
    if signed is not None and signed is not False and signed != "":
        return True
    return is_present(getattr(deal, req.document_field))


def _financials_satisfied(deal: Deal, req: FinancialsRequirement) -> bool:
    return all(is_present(getattr(deal, name)) for name in FINANCIAL_FIELDS)


def _material_satisfied(deal: Deal, req: MaterialRequirement) -> bool:
    if deal.material_category in METAL_CATEGORIES:
        return is_present(deal.material_type)
    return is_present(deal.material_color)


_CHECKS: dict[str, Callable[[Deal, Any], bool]] = {
    "field": _field_satisfied,
    "adjuster": _adjuster_satisfied,
    "document": _document_satisfied,
    "signature": _signature_satisfied,
    "financials": _financials_satisfied,
    "material": _material_satisfied,
}


def is_requirement_satisfied(deal: Deal, requirement: Requirement) -> bool:
    return _CHECKS[requirement.kind](deal, requirement)


def is_stage_satisfied(deal: Deal, step: WorkflowStepDefinition) -> bool:
    """True when every requirement of ``step`` holds for ``deal``.

    Pass the merged view (pending edits over the persisted record).
    """
    return all(is_requirement_satisfied(deal, req) for req in step.requirements)


def missing_requirements(deal: Deal, step: WorkflowStepDefinition) -> list[str]:
    missing: list[str] = []
    for req in step.requirements:
        if is_requirement_satisfied(deal, req):
            continue
        if isinstance(req, FinancialsRequirement):
            missing.extend(name.upper() if name in ("rcv", "acv") else name.capitalize()
                           for name in FINANCIAL_FIELDS if not is_present(getattr(deal, name)))
        elif isinstance(req, MaterialRequirement):
            missing.append("Metal Type" if deal.material_category in METAL_CATEGORIES else "Material Color")
        else:
            missing.append(req.label)
    return missing
