from __future__ import annotations

import base64
from datetime import date

import pytest
import requests

from roofline.clients.deals_api import HttpDealsApi, HttpFilesApi
from roofline.core.enums import DealStatus
from roofline.core.exceptions import NotFoundError, PersistenceError


class _Response:
    def __init__(self, status_code: int, body) -> None:
        self.status_code = status_code
        self._body = body

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


class _Session:
    def __init__(self, *responses) -> None:
        self.responses = list(responses)
        self.requests: list[dict] = []

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.requests.append({"method": method, "url": url, "json": json, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _api(cls, *responses):
    session = _Session(*responses)
    return cls(base_url="https://api.example.com/v1/", token="tok", timeout=5, session=session), session


def test_update_sends_wire_values_and_unwraps_data():
    api, session = _api(HttpDealsApi, _Response(200, {"data": {"id": "d1", "status": "claim_filed"}}))
    deal = api.update("d1", {"status": DealStatus.CLAIM_FILED, "date_of_loss": date(2026, 9, 1)})
    assert deal.status == DealStatus.CLAIM_FILED
    sent = session.requests[0]
    assert sent["method"] == "PUT"
    assert sent["url"] == "https://api.example.com/v1/deals/d1"
    assert sent["json"] == {"status": "claim_filed", "date_of_loss": "2026-09-01"}
    assert sent["headers"]["Authorization"] == "Bearer tok"


def test_error_envelope_becomes_persistence_error():
    api, _ = _api(HttpDealsApi, _Response(400, {"error": "No fields to update"}))
    with pytest.raises(PersistenceError, match="Failed to update deal: No fields to update"):
        api.update("d1", {"notes": "x"})


def test_network_failure_becomes_persistence_error():
    api, _ = _api(HttpDealsApi, requests.exceptions.ConnectionError("refused"))
    with pytest.raises(PersistenceError, match="load deal"):
        api.get("d1")


def test_missing_deal_and_rep():
    api, _ = _api(
        HttpDealsApi,
        _Response(404, {"error": "Deal not found"}),
        _Response(404, ValueError("no body")),
    )
    with pytest.raises(NotFoundError):
        api.get("d1")
    assert api.get_rep("r9") is None
    assert api.get_rep(None) is None


def test_create_from_pin_unwraps_deal():
    api, session = _api(HttpDealsApi, _Response(201, {"data": {"deal": {"id": "d7"}, "pin_id": "p1"}}))
    deal = api.create_from_pin("p1")
    assert deal.id == "d7"
    assert deal.status == DealStatus.LEAD
    assert session.requests[0]["json"] == {"pin_id": "p1"}


def test_upload_encodes_file_and_returns_key():
    api, session = _api(HttpFilesApi, _Response(200, {"data": {"key": "stored/key.pdf"}}))
    key = api.upload_file(b"%PDF", "../loss statement.pdf", "application/pdf", "lost-statement", "d1")
    assert key == "stored/key.pdf"
    payload = session.requests[0]["json"]
    assert base64.b64decode(payload["fileData"]) == b"%PDF"
    assert payload["fileName"] == "loss_statement.pdf"
    assert payload["key"].startswith("deals/d1/lost-statement/")


def test_rejected_upload_returns_none():
    api, _ = _api(HttpFilesApi, _Response(500, {"error": "S3 unavailable"}))
    assert api.upload_file(b"x", "a.png", "image/png", "signature", "d1") is None
