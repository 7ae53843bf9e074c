"""Client for the anonymous file host used to stage bill attachments."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from ..models import Attachment
from .errors import BlobHostError

LOGGER = logging.getLogger(__name__)

DEFAULT_UPLOAD_URL = "https://tmpfiles.org/api/v1/upload"
DEFAULT_VIEW_PREFIX = "https://tmpfiles.org/"
DEFAULT_DOWNLOAD_PREFIX = "https://tmpfiles.org/dl/"


class BlobHost(Protocol):
    def upload(self, attachment: Attachment) -> str:  # pragma: no cover - runtime protocol
        """Stage ``attachment`` and return a direct download URL."""


class TmpFilesBlobHost:
    """Uploads files to tmpfiles.org and returns their direct download URL."""

    def __init__(
        self,
        *,
        upload_url: str = DEFAULT_UPLOAD_URL,
        view_prefix: str = DEFAULT_VIEW_PREFIX,
        download_prefix: str = DEFAULT_DOWNLOAD_PREFIX,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.upload_url = upload_url
        self.view_prefix = view_prefix
        self.download_prefix = download_prefix
        self.timeout = timeout
        self._session = session or requests.Session()

    def upload(self, attachment: Attachment) -> str:
        LOGGER.info("Staging attachment %s (%s bytes)", attachment.filename, attachment.size)
        files = {"file": (attachment.filename, attachment.data, attachment.content_type)}
        try:
            response = self._session.post(self.upload_url, files=files, timeout=self.timeout)
        except requests.RequestException as exc:
            raise BlobHostError(f"Upload request failed: {exc}") from exc

        if not response.ok:
            raise BlobHostError(f"Upload rejected with status {response.status_code}")

        try:
            view_url = response.json()["data"]["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise BlobHostError("Upload response did not include a file URL") from exc

        return self.download_url_for(view_url)

    def download_url_for(self, view_url: str) -> str:
        """Rewrite the host's page URL into the URL that serves the raw file."""

        # The host sometimes answers with plain http page URLs.
        for prefix in (self.view_prefix, self.view_prefix.replace("https://", "http://", 1)):
            if view_url.startswith(prefix):
                return self.download_prefix + view_url[len(prefix):]
        LOGGER.warning("Unexpected file URL %s, using it unchanged", view_url)
        return view_url

    def close(self) -> None:
        self._session.close()
