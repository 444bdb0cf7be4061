"""Pydantic schema package for deal snapshots and notices."""

from roofline.schemas.common import Notice
from roofline.schemas.deals import (
    DEAL_FIELDS,
    FINANCIAL_FIELDS,
    Deal,
    DealCommission,
    RepProfile,
    merge_pending,
    to_wire,
)

__all__ = [
    "DEAL_FIELDS",
    "FINANCIAL_FIELDS",
    "Deal",
    "DealCommission",
    "Notice",
    "RepProfile",
    "merge_pending",
    "to_wire",
]
