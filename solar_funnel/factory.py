"""Factory helpers for constructing funnel collaborators from settings."""
from __future__ import annotations

import logging
from typing import Optional

import requests

from .address import AddressLookup, GooglePlacesAddressLookup, StaticAddressLookup
from .config import FunnelSettings
from .gateway import AirtableRecordStore, SubmissionGateway, TmpFilesBlobHost

LOGGER = logging.getLogger(__name__)


def build_gateway(settings: FunnelSettings, *, session: Optional[requests.Session] = None) -> SubmissionGateway:
    """Wire the record store and blob host described by ``settings``."""

    store_settings = settings.require_record_store()
    record_store = AirtableRecordStore(
        store_settings.api_key or "",
        store_settings.base_id or "",
        store_settings.table_name,
        endpoint_url=store_settings.endpoint_url,
        timeout=settings.request_timeout,
        session=session,
    )
    blob_host = TmpFilesBlobHost(
        upload_url=settings.blob_host.upload_url,
        view_prefix=settings.blob_host.view_prefix,
        download_prefix=settings.blob_host.download_prefix,
        timeout=settings.request_timeout,
        session=session,
    )
    return SubmissionGateway(
        record_store,
        blob_host,
        error_codes=settings.error_codes,
        attachment_field=store_settings.attachment_field,
    )


def build_address_lookup(settings: FunnelSettings, *, session: Optional[requests.Session] = None) -> AddressLookup:
    lookup_settings = settings.address_lookup
    if lookup_settings.api_key:
        return GooglePlacesAddressLookup(
            lookup_settings.api_key,
            country=lookup_settings.country,
            session=session,
        )
    LOGGER.warning("No address lookup key configured - falling back to the static address list")
    return StaticAddressLookup(lookup_settings.addresses)
