"""
Cloudinary blob storage.

Unsigned uploads (``upload_preset``) to
``https://api.cloudinary.com/v1_1/<cloud>/<image|video>/upload``; the
returned ``secure_url`` is the durable URL. Retrieval is a plain GET.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..errors import StorageError
from ..models import Blob, MediaKind


__all__ = ["CloudinaryStorage"]


logger = logging.getLogger(__name__)


CLOUDINARY_API_BASE = "https://api.cloudinary.com/v1_1"


class CloudinaryStorage:
    """
    Durable storage backed by Cloudinary.

    Args:
        cloud_name: Cloudinary cloud name.
        upload_preset: Unsigned upload preset.
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        cloud_name: str,
        upload_preset: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not cloud_name or not upload_preset:
            raise ValueError("Cloudinary requires a cloud name and an upload preset")
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    def upload_url(self, kind: MediaKind) -> str:
        return f"{CLOUDINARY_API_BASE}/{self.cloud_name}/{kind.value}/upload"

    async def upload(self, blob: Blob, kind: MediaKind) -> str:
        """
        Upload a blob and return its ``secure_url``.

        Raises:
            StorageError: On transport failure or a non-success response.
        """
        url = self.upload_url(kind)
        files = {"file": (blob.filename, blob.data, blob.mime_type)}
        data = {"upload_preset": self.upload_preset}

        try:
            async with self._client() as client:
                response = await client.post(url, data=data, files=files)
        except httpx.HTTPError as exc:
            raise StorageError(f"Upload failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error or "error" in payload:
            error = payload.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            raise StorageError(f"Upload failed: {message or response.reason_phrase}")

        secure_url = payload.get("secure_url")
        if not secure_url:
            raise StorageError("Upload response did not include secure_url")

        logger.info("Uploaded %s (%d bytes) -> %s", kind.value, blob.size, secure_url)
        return secure_url

    async def fetch(self, url: str) -> Blob:
        """
        Download a previously uploaded blob.

        Raises:
            StorageError: On transport failure or a non-success response.
        """
        try:
            async with self._client() as client:
                response = await client.get(url, follow_redirects=True)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise StorageError(f"Fetch failed for {url}: {exc}") from exc

        mime_type = response.headers.get("content-type", "application/octet-stream")
        mime_type = mime_type.split(";")[0].strip()
        filename = url.rsplit("/", 1)[-1] or "blob"
        return Blob(data=response.content, mime_type=mime_type, filename=filename)
