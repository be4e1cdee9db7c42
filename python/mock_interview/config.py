"""
Runtime configuration for the interview orchestrator.

Values come from the environment (a ``.env`` file next to the ``python/``
directory is loaded first). Timing values are plain settings so the
transcript poll budget and per-question clocks can be tuned per deployment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path

from dotenv import load_dotenv


_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path)


DEFAULT_COUNTDOWN_SECONDS = 5
DEFAULT_ANSWER_SECONDS = 2 * 60
DEFAULT_TICK_SECONDS = 1.0
DEFAULT_QUESTION_COUNT = 5
DEFAULT_POLL_INTERVAL_SECONDS = 2.0
DEFAULT_POLL_MAX_ATTEMPTS = 10
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"


@dataclass(frozen=True)
class InterviewSettings:
    """Timing, vendor and storage settings for one deployment."""

    countdown_seconds: int = DEFAULT_COUNTDOWN_SECONDS
    answer_seconds: int = DEFAULT_ANSWER_SECONDS
    tick_seconds: float = DEFAULT_TICK_SECONDS
    question_count: int = DEFAULT_QUESTION_COUNT
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_max_attempts: int = DEFAULT_POLL_MAX_ATTEMPTS
    data_dir: Path = Path("data")
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    openai_model: str = DEFAULT_OPENAI_MODEL
    cloudinary_cloud_name: str | None = None
    cloudinary_upload_preset: str | None = None
    assemblyai_api_key: str | None = None

    def with_overrides(self, **changes: object) -> "InterviewSettings":
        """Return a copy with selected fields replaced."""
        return replace(self, **changes)


def _read_int(name: str, default: int, minimum: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer. Got: {raw}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}. Got: {value}.")
    return value


def _read_float(name: str, default: float, minimum: float) -> float:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number. Got: {raw}") from exc
    if value < minimum:
        raise RuntimeError(f"{name} must be >= {minimum}. Got: {value}.")
    return value


def _read_optional(name: str) -> str | None:
    value = (os.environ.get(name) or "").strip()
    return value or None


def load_settings() -> InterviewSettings:
    """Load settings from environment with strict validation."""
    data_dir_raw = (os.environ.get("INTERVIEW_DATA_DIR") or "").strip()
    data_dir = Path(data_dir_raw).expanduser() if data_dir_raw else Path("data")

    return InterviewSettings(
        countdown_seconds=_read_int(
            "INTERVIEW_COUNTDOWN_SECONDS", DEFAULT_COUNTDOWN_SECONDS, minimum=0
        ),
        answer_seconds=_read_int(
            "INTERVIEW_ANSWER_SECONDS", DEFAULT_ANSWER_SECONDS, minimum=1
        ),
        tick_seconds=_read_float(
            "INTERVIEW_TICK_SECONDS", DEFAULT_TICK_SECONDS, minimum=0.0
        ),
        question_count=_read_int(
            "INTERVIEW_QUESTION_COUNT", DEFAULT_QUESTION_COUNT, minimum=1
        ),
        poll_interval_seconds=_read_float(
            "TRANSCRIPT_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS, minimum=0.0
        ),
        poll_max_attempts=_read_int(
            "TRANSCRIPT_POLL_MAX_ATTEMPTS", DEFAULT_POLL_MAX_ATTEMPTS, minimum=1
        ),
        data_dir=data_dir,
        http_timeout_seconds=_read_float(
            "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS, minimum=0.1
        ),
        openai_model=_read_optional("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        cloudinary_cloud_name=_read_optional("CLOUDINARY_CLOUD_NAME"),
        cloudinary_upload_preset=_read_optional("CLOUDINARY_UPLOAD_PRESET"),
        assemblyai_api_key=_read_optional("ASSEMBLYAI_API_KEY"),
    )
