"""Structured logging helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class LogContext:
    """Normalized context fields expected in structured logs."""

    deal_id: str | None = None
    user_id: str | None = None
    role: str | None = None
    action: str | None = None


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "deal_id": context.deal_id,
        "user_id": context.user_id,
        "role": context.role,
        "action": context.action,
    }
    payload.update(fields)
    return payload
