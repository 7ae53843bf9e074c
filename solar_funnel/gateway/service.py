"""Submission gateway that turns a completed answer set into one stored record."""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import requests

from ..models import AnswerSet, HomeOwnership
from .blob_host import BlobHost
from .errors import (
    AttachmentError,
    BlobHostError,
    ConnectivityError,
    CreateFailedError,
    GatewayError,
    RecordStoreError,
    UnknownError,
    ValidationError,
)
from .record_store import RecordStore

LOGGER = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Required fields are missing"
CONNECTION_FAILED_MESSAGE = (
    "Connection failed. Please check your internet connection and record store credentials."
)
ATTACHMENT_FAILED_MESSAGE = "Failed to process file. Please try again."
CREATE_FAILED_MESSAGE = "Failed to create contact record"
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please check your internet connection and try again."
FALLBACK_MESSAGE = "Failed to add contact. Please try again."

DEFAULT_ERROR_CODES: Dict[str, str] = {
    "INVALID_ATTACHMENT_OBJECT": (
        "Invalid attachment format or file too large. Please try a different file under 10MB."
    ),
}

STATUS_MESSAGES: Dict[int, str] = {
    403: "Permission denied. Please verify your record store API key and access rights.",
    404: "Table or base not found. Please verify your record store configuration.",
    413: "The attached file is too large. Please try a smaller file.",
    422: "Invalid data format. Please check your input.",
}

DEFAULT_ATTACHMENT_FIELD = "PDF"


def format_bill_amount(amount: str) -> Optional[str]:
    text = (amount or "").strip()
    if not text:
        return None
    return f"${text}"


def build_record_fields(
    answers: AnswerSet,
    *,
    attachment_url: Optional[str] = None,
    attachment_field: str = DEFAULT_ATTACHMENT_FIELD,
) -> Dict[str, Any]:
    """Map the answers onto the record store's display columns."""

    fields: Dict[str, Any] = {
        "Name": answers.full_name().strip(),
        "Email": answers.email.strip(),
        "Phone": answers.phone.strip(),
        "Address": answers.address.strip(),
        "Home Ownership": "Yes" if answers.home_ownership == HomeOwnership.OWN else "No",
    }
    monthly_bill = format_bill_amount(answers.electricity_bill)
    if monthly_bill is not None:
        fields["Monthly Bill"] = monthly_bill
    if attachment_url and answers.attachment is not None:
        fields[attachment_field] = [{"url": attachment_url, "filename": answers.attachment.filename}]
    return fields


def normalise_error(
    exc: BaseException,
    error_codes: Optional[Mapping[str, str]] = None,
) -> GatewayError:
    """Reduce any failure raised during submission to a user readable :class:`GatewayError`."""

    if isinstance(exc, GatewayError):
        return exc

    if isinstance(exc, RecordStoreError):
        if exc.is_empty:
            return UnknownError(UNEXPECTED_MESSAGE)
        codes = DEFAULT_ERROR_CODES if error_codes is None else error_codes
        if exc.error_type and exc.error_type in codes:
            return AttachmentError(codes[exc.error_type])
        if exc.message:
            return CreateFailedError(exc.message)
        if exc.status_code in STATUS_MESSAGES:
            return CreateFailedError(STATUS_MESSAGES[exc.status_code])
        return CreateFailedError(FALLBACK_MESSAGE)

    if isinstance(exc, (requests.ConnectionError, requests.Timeout)):
        return ConnectivityError(str(exc) or UNEXPECTED_MESSAGE)

    message = str(exc)
    if not message:
        return UnknownError(UNEXPECTED_MESSAGE)
    return UnknownError(message)


class SubmissionGateway:
    """Stages the optional attachment and writes one record per submission.

    Every call runs the whole sequence once: required-field check, store
    probe, attachment upload, record creation. Nothing is retried; any
    failure is raised as a :class:`GatewayError` subclass.
    """

    def __init__(
        self,
        record_store: RecordStore,
        blob_host: BlobHost,
        *,
        error_codes: Optional[Mapping[str, str]] = None,
        attachment_field: str = DEFAULT_ATTACHMENT_FIELD,
    ) -> None:
        self.record_store = record_store
        self.blob_host = blob_host
        self.error_codes = dict(DEFAULT_ERROR_CODES if error_codes is None else error_codes)
        self.attachment_field = attachment_field

    def submit(self, answers: AnswerSet) -> str:
        """Persist ``answers`` and return the new record id."""

        required = [answers.full_name(), answers.email, answers.phone, answers.address]
        if not all(value.strip() for value in required):
            raise ValidationError(MISSING_FIELDS_MESSAGE)

        try:
            self._probe()
            attachment_url = self._stage_attachment(answers)
            fields = build_record_fields(
                answers,
                attachment_url=attachment_url,
                attachment_field=self.attachment_field,
            )
            records = self.record_store.create(fields)
            if not records:
                raise CreateFailedError(CREATE_FAILED_MESSAGE)
        except Exception as exc:
            error = normalise_error(exc, self.error_codes)
            LOGGER.error("Submission failed: %s (%s)", error.message, type(exc).__name__)
            if error is exc:
                raise
            raise error from exc

        record_id = str(records[0].get("id", ""))
        LOGGER.info("Created lead record %s", record_id or "(no id)")
        return record_id

    # ------------------------------------------------------------------
    def _probe(self) -> None:
        try:
            self.record_store.probe()
        except RecordStoreError as exc:
            message = None if exc.is_empty else exc.message
            raise ConnectivityError(message or CONNECTION_FAILED_MESSAGE) from exc
        except requests.RequestException as exc:
            raise ConnectivityError(str(exc) or CONNECTION_FAILED_MESSAGE) from exc

    def _stage_attachment(self, answers: AnswerSet) -> Optional[str]:
        if answers.attachment is None:
            return None
        try:
            return self.blob_host.upload(answers.attachment)
        except (BlobHostError, requests.RequestException) as exc:
            LOGGER.warning("Attachment staging failed: %s", exc)
            raise AttachmentError(ATTACHMENT_FAILED_MESSAGE) from exc
