"""Submission gateway: attachment staging, record creation and error normalisation."""

from .blob_host import BlobHost, TmpFilesBlobHost
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
from .record_store import AirtableRecordStore, RecordStore
from .service import SubmissionGateway, build_record_fields, normalise_error

__all__ = [
    "AirtableRecordStore",
    "AttachmentError",
    "BlobHost",
    "BlobHostError",
    "ConnectivityError",
    "CreateFailedError",
    "GatewayError",
    "RecordStore",
    "RecordStoreError",
    "SubmissionGateway",
    "TmpFilesBlobHost",
    "UnknownError",
    "ValidationError",
    "build_record_fields",
    "normalise_error",
]
