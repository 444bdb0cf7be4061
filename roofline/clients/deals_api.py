"""Collaborator contracts for deal persistence and file storage, plus HTTP clients.

The backend wraps every response as ``{"data": ...}`` or ``{"error": ...}``.
Failures are surfaced once as :class:`PersistenceError`; nothing here
retries.
"""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Protocol

import requests

from roofline.core.config import get_config
from roofline.core.exceptions import NotFoundError, PersistenceError
from roofline.schemas.deals import Deal, RepProfile, to_wire
from roofline.utils.validators import sanitize_filename

logger = logging.getLogger(__name__)


class DealsGateway(Protocol):
    def get(self, deal_id: str) -> Deal: ...

    def update(self, deal_id: str, fields: dict[str, Any]) -> Deal: ...

    def create_from_pin(self, pin_id: str) -> Deal: ...

    def get_rep(self, rep_id: str | None) -> RepProfile | None: ...


class FilesGateway(Protocol):
    def upload_file(self, data: bytes, name: str, mime_type: str, category: str, deal_id: str) -> str | None: ...


class _ApiClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
    ) -> None:
        config = get_config()
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.token = token if token is not None else config.API_TOKEN
        self.timeout = timeout or config.API_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, action: str, payload: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                headers=self._headers(),
                timeout=(2, self.timeout),
            )
        except requests.exceptions.RequestException as exc:
            logger.warning(
                "api.request.failed",
                extra={"event": "api.request.failed", "action": action, "path": path, "error": str(exc)},
            )
            raise PersistenceError(action, str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.status_code == 404:
            raise NotFoundError(body.get("error") or f"Not found: {path}")
        if not response.ok or body.get("error"):
            detail = body.get("error") or f"HTTP {response.status_code}"
            logger.warning(
                "api.request.rejected",
                extra={"event": "api.request.rejected", "action": action, "path": path, "status": response.status_code},
            )
            raise PersistenceError(action, detail)
        return body.get("data", body)


class HttpDealsApi(_ApiClient):
    """Deals endpoints of the backend API."""

    def get(self, deal_id: str) -> Deal:
        return Deal.model_validate(self._request("GET", f"/deals/{deal_id}", "load deal"))

    def update(self, deal_id: str, fields: dict[str, Any]) -> Deal:
        data = self._request("PUT", f"/deals/{deal_id}", "update deal", to_wire(fields))
        return Deal.model_validate(data)

    def create_from_pin(self, pin_id: str) -> Deal:
        data = self._request("POST", "/deals", "create deal", {"pin_id": pin_id})
        # Answers with {"deal": ..., "pin_id": ...}.
        if isinstance(data, dict) and isinstance(data.get("deal"), dict):
            data = data["deal"]
        return Deal.model_validate(data)

    def get_rep(self, rep_id: str | None) -> RepProfile | None:
        if not rep_id:
            return None
        try:
            return RepProfile.model_validate(self._request("GET", f"/reps/{rep_id}", "load rep"))
        except NotFoundError:
            return None


class HttpFilesApi(_ApiClient):
    """Uploads go as base64 JSON; the backend answers with the stored key."""

    def upload_file(self, data: bytes, name: str, mime_type: str, category: str, deal_id: str) -> str | None:
        safe_name = sanitize_filename(name)
        key = f"deals/{deal_id}/{category}/{int(time.time() * 1000)}-{safe_name}"
        payload = {
            "key": key,
            "fileData": base64.b64encode(data).decode("ascii"),
            "fileType": mime_type,
            "fileName": safe_name,
        }
        try:
            result = self._request("POST", "/upload", "upload file", payload)
        except PersistenceError:
            logger.warning(
                "api.upload.failed",
                extra={"event": "api.upload.failed", "deal_id": deal_id, "category": category},
            )
            return None
        if isinstance(result, dict):
            return result.get("key") or key
        return key
