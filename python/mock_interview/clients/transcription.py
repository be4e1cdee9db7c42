"""
AssemblyAI transcription.

``POST /v2/transcript {"audio_url": ...}`` starts a job and returns its id;
``GET /v2/transcript/<id>`` reports ``status`` (queued, processing,
completed, error) with ``text`` or ``error``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..errors import TranscriptionError
from ..models import TranscriptStatus, TranscriptStatusReport


__all__ = ["AssemblyAITranscription"]


logger = logging.getLogger(__name__)


ASSEMBLYAI_BASE_URL = "https://api.assemblyai.com"


class AssemblyAITranscription:
    """Transcription service backed by the AssemblyAI REST API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = ASSEMBLYAI_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise ValueError("AssemblyAI requires an API key")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"authorization": self._api_key},
            transport=self._transport,
        )

    async def request_transcription(self, media_url: str) -> str:
        """
        Start a transcription job for a public media URL.

        Raises:
            TranscriptionError: If the job could not be created.
        """
        try:
            async with self._client() as client:
                response = await client.post("/v2/transcript", json={"audio_url": media_url})
        except httpx.HTTPError as exc:
            raise TranscriptionError(f"Transcription request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error:
            raise TranscriptionError(
                payload.get("error") or f"Transcription request failed ({response.status_code})"
            )

        job_id = payload.get("id")
        if not job_id:
            raise TranscriptionError("Transcription response did not include an id")
        return job_id

    async def poll_status(self, job_id: str) -> TranscriptStatusReport:
        """
        Report the current status of a job.

        Network failures and unknown payloads are reported as ``error``
        rather than raised.
        """
        try:
            async with self._client() as client:
                response = await client.get(f"/v2/transcript/{job_id}")
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Transcript status check failed for %s: %s", job_id, exc)
            return TranscriptStatusReport(status=TranscriptStatus.ERROR, error=str(exc))

        if response.is_error:
            return TranscriptStatusReport(
                status=TranscriptStatus.ERROR,
                error=payload.get("error") or f"HTTP {response.status_code}",
            )

        try:
            status = TranscriptStatus(payload.get("status"))
        except ValueError:
            return TranscriptStatusReport(
                status=TranscriptStatus.ERROR,
                error=f"Unknown transcript status: {payload.get('status')!r}",
            )

        return TranscriptStatusReport(
            status=status,
            text=payload.get("text"),
            error=payload.get("error"),
        )
