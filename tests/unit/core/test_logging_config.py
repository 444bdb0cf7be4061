from __future__ import annotations

import json
import logging

from roofline.core.logging import LogContext, build_log_event
from roofline.core.logging_config import JsonFormatter


def test_json_formatter_carries_event_context():
    record = logging.LogRecord("roofline.test", logging.INFO, __file__, 1, "deal.status_advanced", None, None)
    record.event = "deal.status_advanced"
    record.deal_id = "d1"
    record.to_status = "claim_filed"
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "deal.status_advanced"
    assert payload["deal_id"] == "d1"
    assert payload["to_status"] == "claim_filed"
    assert "group" not in payload


def test_build_log_event_normalizes_context():
    event = build_log_event("admin.deal_updated", LogContext(deal_id="d1", role="admin"), fields=["status"])
    assert event["event"] == "admin.deal_updated"
    assert event["user_id"] is None
    assert event["fields"] == ["status"]
