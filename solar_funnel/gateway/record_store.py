"""Client for the Airtable REST API used as the lead record store."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol
from urllib.parse import quote

import requests

from .errors import RecordStoreError

LOGGER = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://api.airtable.com"
DEFAULT_TIMEOUT = 30.0


class RecordStore(Protocol):
    """Interface the submission gateway expects from a record store."""

    def probe(self) -> None:  # pragma: no cover - runtime protocol
        """Read a single record, raising on any failure."""

    def create(self, fields: Dict[str, Any]) -> List[Dict[str, Any]]:  # pragma: no cover - runtime protocol
        """Create one record and return the created records."""


class AirtableRecordStore:
    """Reads and writes records in one Airtable table."""

    def __init__(
        self,
        api_key: str,
        base_id: str,
        table_name: str,
        *,
        endpoint_url: str = DEFAULT_ENDPOINT_URL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key or not base_id or not table_name:
            raise ValueError("AirtableRecordStore requires an API key, a base id and a table name.")
        self._api_key = api_key
        self.base_id = base_id
        self.table_name = table_name
        self.endpoint_url = endpoint_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def table_url(self) -> str:
        return f"{self.endpoint_url}/v0/{self.base_id}/{quote(self.table_name, safe='')}"

    def probe(self) -> None:
        LOGGER.debug("Probing record store table %s", self.table_name)
        self._request("GET", params={"maxRecords": 1})

    def create(self, fields: Dict[str, Any]) -> List[Dict[str, Any]]:
        LOGGER.info("Creating record in table %s", self.table_name)
        payload = self._request("POST", json={"records": [{"fields": fields}]})
        records = payload.get("records") if isinstance(payload, dict) else None
        return list(records or [])

    def close(self) -> None:
        self._session.close()

    # ------------------------------------------------------------------
    def _request(self, method: str, **kwargs: Any) -> Any:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        response = self._session.request(
            method,
            self.table_url,
            headers=headers,
            timeout=self.timeout,
            **kwargs,
        )
        if response.status_code >= 400:
            raise _error_from_response(response)
        try:
            return response.json()
        except ValueError:
            LOGGER.warning("Record store returned a non-JSON body (status %s)", response.status_code)
            return {}


def _error_from_response(response: requests.Response) -> RecordStoreError:
    """Translate an Airtable error body into a :class:`RecordStoreError`.

    Airtable reports errors either as ``{"error": "NOT_FOUND"}`` or as
    ``{"error": {"type": "INVALID_ATTACHMENT_OBJECT", "message": "..."}}``.
    """

    error_type: Optional[str] = None
    message: Optional[str] = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            error_type = error.get("type") or None
            message = error.get("message") or None
        elif isinstance(error, str):
            error_type = error or None
        if message is None and isinstance(body.get("message"), str):
            message = body["message"] or None

    LOGGER.warning(
        "Record store request failed with status %s (%s)",
        response.status_code,
        error_type or "no error type",
    )
    return RecordStoreError(message, status_code=response.status_code, error_type=error_type)
