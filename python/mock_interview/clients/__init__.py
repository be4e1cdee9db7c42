"""
Vendor adapters for the interview orchestrator.

Components:
    - CloudinaryStorage: Durable blob storage (resumes, answer clips)
    - AssemblyAITranscription: Asynchronous speech-to-text jobs
    - AgentContentGenerator: Question and feedback generation (openai-agents)
    - JsonRecordStore: Jobs and interview records on the filesystem
    - PdfRasterizer: First-page PDF to PNG
    - EspeakNarrator: Spoken questions
    - FfmpegCaptureDevice: Camera + microphone recording
"""

from __future__ import annotations

from typing import Optional

from ..collaborators import CaptureDevice, InterviewServices, VisibilitySource
from ..config import InterviewSettings
from ..proctoring import VisibilityHub
from .ffmpeg_capture import FfmpegCaptureDevice
from .generation import AgentContentGenerator
from .narration import EspeakNarrator
from .rasterizer import PdfRasterizer
from .records import JsonRecordStore
from .storage import CloudinaryStorage
from .transcription import AssemblyAITranscription


__all__ = [
    "AgentContentGenerator",
    "AssemblyAITranscription",
    "CloudinaryStorage",
    "EspeakNarrator",
    "FfmpegCaptureDevice",
    "JsonRecordStore",
    "PdfRasterizer",
    "build_services",
]


def build_services(
    settings: InterviewSettings,
    visibility: Optional[VisibilitySource] = None,
    capture_device: Optional[CaptureDevice] = None,
) -> InterviewServices:
    """
    Wire the real vendor adapters from settings.

    Raises:
        RuntimeError: If a required vendor credential is missing.
    """
    missing = [
        name
        for name, value in (
            ("CLOUDINARY_CLOUD_NAME", settings.cloudinary_cloud_name),
            ("CLOUDINARY_UPLOAD_PRESET", settings.cloudinary_upload_preset),
            ("ASSEMBLYAI_API_KEY", settings.assemblyai_api_key),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    return InterviewServices(
        generator=AgentContentGenerator(
            model=settings.openai_model,
            question_count=settings.question_count,
        ),
        storage=CloudinaryStorage(
            cloud_name=settings.cloudinary_cloud_name,
            upload_preset=settings.cloudinary_upload_preset,
            timeout=settings.http_timeout_seconds,
        ),
        transcription=AssemblyAITranscription(
            api_key=settings.assemblyai_api_key,
            timeout=settings.http_timeout_seconds,
        ),
        records=JsonRecordStore(settings.data_dir),
        rasterizer=PdfRasterizer(),
        narrator=EspeakNarrator(),
        capture_device=capture_device or FfmpegCaptureDevice(),
        visibility=visibility or VisibilityHub(),
    )
