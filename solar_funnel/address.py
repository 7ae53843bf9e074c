"""Address lookup collaborators used to confirm the property address."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol

import requests

LOGGER = logging.getLogger(__name__)

PLACES_AUTOCOMPLETE_URL = "https://maps.googleapis.com/maps/api/place/autocomplete/json"
PLACES_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"


class AddressLookupError(RuntimeError):
    """Raised when the lookup service cannot be queried."""


@dataclass(frozen=True)
class AddressSuggestion:
    description: str
    place_id: Optional[str] = None


class AddressLookup(Protocol):
    def suggest(self, text: str) -> List[AddressSuggestion]:  # pragma: no cover - runtime protocol
        """Return suggestions matching partially typed ``text``."""

    def resolve(self, suggestion: AddressSuggestion) -> Optional[str]:  # pragma: no cover - runtime protocol
        """Return the confirmed formatted address for ``suggestion``."""


class GooglePlacesAddressLookup:
    """Google Places autocomplete restricted to a single country."""

    MIN_QUERY_LENGTH = 3

    def __init__(
        self,
        api_key: str,
        *,
        country: str = "au",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key:
            raise ValueError("GooglePlacesAddressLookup requires an API key.")
        self._api_key = api_key
        self.country = country.lower()
        self.timeout = timeout
        self._session = session or requests.Session()

    def suggest(self, text: str) -> List[AddressSuggestion]:
        query = (text or "").strip()
        if len(query) < self.MIN_QUERY_LENGTH:
            return []
        payload = self._get(
            PLACES_AUTOCOMPLETE_URL,
            {
                "input": query,
                "types": "address",
                "components": f"country:{self.country}",
            },
        )
        return [
            AddressSuggestion(description=item["description"], place_id=item.get("place_id"))
            for item in payload.get("predictions", [])
            if item.get("description")
        ]

    def resolve(self, suggestion: AddressSuggestion) -> Optional[str]:
        if not suggestion.place_id:
            return None
        payload = self._get(
            PLACES_DETAILS_URL,
            {"place_id": suggestion.place_id, "fields": "formatted_address"},
        )
        result = payload.get("result") or {}
        return result.get("formatted_address") or None

    def _get(self, url: str, params: dict) -> dict:
        params = dict(params, key=self._api_key)
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise AddressLookupError(f"Address lookup failed: {exc}") from exc

        status = payload.get("status")
        if status not in {"OK", "ZERO_RESULTS"}:
            detail = payload.get("error_message") or status or "unknown status"
            raise AddressLookupError(f"Address lookup failed: {detail}")
        return payload


class StaticAddressLookup:
    """Suggests addresses from a fixed list, for offline use and demos."""

    def __init__(self, addresses: Iterable[str]) -> None:
        self.addresses = [address.strip() for address in addresses if address and address.strip()]

    def suggest(self, text: str) -> List[AddressSuggestion]:
        term = (text or "").strip().lower()
        if not term:
            return []
        return [AddressSuggestion(description=address) for address in self.addresses if term in address.lower()]

    def resolve(self, suggestion: AddressSuggestion) -> Optional[str]:
        if suggestion.description in self.addresses:
            return suggestion.description
        LOGGER.debug("Suggestion %r is not a known address", suggestion.description)
        return None
