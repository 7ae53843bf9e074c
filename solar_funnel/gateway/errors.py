"""Error types raised while submitting a lead."""
from __future__ import annotations

from typing import Optional


class GatewayError(RuntimeError):
    """Base class for every failure surfaced to the funnel controller."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GatewayError):
    """Required answers were missing; nothing was sent."""


class ConnectivityError(GatewayError):
    """The record store could not be reached or rejected the probe."""


class AttachmentError(GatewayError):
    """The attachment could not be staged or was refused by the store."""


class CreateFailedError(GatewayError):
    """The store answered but did not create the record."""


class UnknownError(GatewayError):
    """The upstream failure carried no usable information."""


# --- Upstream client errors ---

class RecordStoreError(Exception):
    """Error response returned by the tabular record store."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message or "")
        self.message = message
        self.status_code = status_code
        self.error_type = error_type

    @property
    def is_empty(self) -> bool:
        return not (self.message or self.status_code or self.error_type)


class BlobHostError(Exception):
    """The blob staging host failed to accept a file."""
