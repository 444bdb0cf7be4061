"""SQLAlchemy-backed deal store for local and offline use.

Implements the same contract as the HTTP deals client so the workflow
services can run against either.
"""

from __future__ import annotations

import enum
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from roofline.core.enums import DealStatus
from roofline.core.exceptions import NotFoundError, PersistenceError, ValidationError
from roofline.database.models import DealCommissionRecord, DealRecord, Pin, Rep
from roofline.schemas.deals import Deal, RepProfile
from roofline.services.base_service import BaseService
from roofline.utils.validators import sanitize_text

logger = logging.getLogger(__name__)

_READ_ONLY_COLUMNS = frozenset({"id", "created_at", "updated_at"})

UPDATABLE_COLUMNS = frozenset(
    name for name in DealRecord.__table__.columns.keys() if name not in _READ_ONLY_COLUMNS
)

_TEXT_COLUMNS = frozenset({"notes", "adjuster_notes", "commission_override_reason"})


class SqlDealStore(BaseService):
    """Deals gateway over the local ORM models."""

    def __init__(self, db: Session | None = None) -> None:
        super().__init__(db)

    def _load(self, deal_id: str) -> DealRecord:
        record = self.db.get(DealRecord, deal_id)
        if record is None:
            raise NotFoundError(f"Deal {deal_id} not found")
        return record

    def get(self, deal_id: str) -> Deal:
        return Deal.model_validate(self._load(deal_id))

    def get_rep(self, rep_id: str | None) -> RepProfile | None:
        if not rep_id:
            return None
        rep = self.db.get(Rep, rep_id)
        return RepProfile.model_validate(rep) if rep is not None else None

    def update(self, deal_id: str, fields: dict[str, Any]) -> Deal:
        record = self._load(deal_id)
        ignored = sorted(name for name in fields if name not in UPDATABLE_COLUMNS)
        if ignored:
            logger.warning(
                "deal_store.fields_ignored",
                extra={"event": "deal_store.fields_ignored", "deal_id": deal_id, "fields": ignored},
            )
        accepted = {name: value for name, value in fields.items() if name in UPDATABLE_COLUMNS}
        if not accepted:
            raise ValidationError("No fields to update")

        # Coerce through the schema so stored values carry their declared types.
        current = Deal.model_validate(record)
        coerced = Deal.model_validate({**current.model_dump(), **accepted})
        for name in accepted:
            value = getattr(coerced, name)
            if isinstance(value, enum.Enum):
                value = value.value
            elif name in _TEXT_COLUMNS and isinstance(value, str):
                value = sanitize_text(value)
            setattr(record, name, value)

        try:
            self.commit()
        except SQLAlchemyError as exc:
            logger.exception("deal_store.update_failed", extra={"event": "deal_store.update_failed", "deal_id": deal_id})
            raise PersistenceError("update deal", str(exc)) from exc
        self.db.refresh(record)
        return Deal.model_validate(record)

    def create_from_pin(self, pin_id: str) -> Deal:
        pin = self.db.get(Pin, pin_id)
        if pin is None:
            raise NotFoundError("Pin not found")
        if pin.deal_id:
            raise ValidationError("This pin already has an associated deal")

        rep = pin.rep
        record = DealRecord(
            status=DealStatus.LEAD.value,
            rep_id=pin.rep_id,
            rep_name=rep.name if rep is not None else None,
            homeowner_name=pin.homeowner_name,
            homeowner_phone=pin.homeowner_phone,
            homeowner_email=pin.homeowner_email,
            address=pin.address,
            city=pin.city,
            state=pin.state,
            zip_code=pin.zip_code,
            notes=pin.notes,
        )
        if pin.rep_id:
            # No amount yet: a stored amount would shadow the computed one.
            record.deal_commissions.append(
                DealCommissionRecord(
                    rep_id=pin.rep_id,
                    commission_type="self_gen",
                    commission_percent=rep.default_commission_percent if rep is not None else None,
                )
            )
        try:
            self.db.add(record)
            self.db.flush()
            pin.deal_id = record.id
            self.commit()
        except SQLAlchemyError as exc:
            logger.exception("deal_store.create_failed", extra={"event": "deal_store.create_failed", "pin_id": pin_id})
            raise PersistenceError("create deal", str(exc)) from exc

        logger.info(
            "deal.created_from_pin",
            extra={"event": "deal.created_from_pin", "deal_id": record.id, "pin_id": pin_id},
        )
        self.db.refresh(record)
        return Deal.model_validate(record)
