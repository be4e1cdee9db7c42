#!/usr/bin/env python3
"""
Console Interview Runner.

Runs one real interview from the terminal: Cloudinary storage, AssemblyAI
transcription, OpenAI question generation and evaluation, ffmpeg capture
and espeak narration. Records are written to INTERVIEW_DATA_DIR.

Usage:
    uv run python run_interview.py --job-id job_backend_engineer \\
        --candidate-id uid_123 --name "Sarah Chen" --email sarah@example.com \\
        --experience 6 --resume ./resume.pdf

Press Enter to acknowledge the instructions, and Enter while recording to
finish an answer early.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Final, Optional

import aiofiles

from mock_interview import (
    AwaitingResumeUpload,
    Blob,
    CandidateProfile,
    Done,
    GuardError,
    InterviewWizard,
    SessionUpdate,
    SessionUpdatePublisher,
    UpdateType,
    load_settings,
)
from mock_interview.clients import build_services

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_GUARD_FAILED: Final[int] = 1
EXIT_CONFIG_ERROR: Final[int] = 2
EXIT_SUBMISSION_FAILED: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130  # Standard SIGINT exit code


INSTRUCTIONS: Final[str] = """
Instructions
  - You will be asked {count} questions, each read aloud.
  - Recording starts after a {countdown}-second countdown.
  - You have {answer} seconds per answer. Press Enter to finish early.
  - Do not switch windows during the interview; switches are recorded.

Press Enter to continue.
"""


# =============================================================================
# Console I/O
# =============================================================================

async def read_line(prompt: str = "") -> str:
    """Read one line from stdin without blocking the event loop (cancellable)."""
    if prompt:
        print(prompt, end="", flush=True)
    loop = asyncio.get_running_loop()
    future: asyncio.Future[str] = loop.create_future()
    fd = sys.stdin.fileno()

    def on_readable() -> None:
        if not future.done():
            future.set_result(sys.stdin.readline())

    loop.add_reader(fd, on_readable)
    try:
        return (await future).strip()
    finally:
        loop.remove_reader(fd)


def render(update: SessionUpdate) -> Optional[str]:
    if update.update_type is UpdateType.QUESTION:
        return f"\nQuestion {(update.question_index or 0) + 1}: {update.content}"
    if update.update_type is UpdateType.COUNTDOWN:
        return f"  Recording starts in {update.seconds_remaining}..."
    if update.update_type is UpdateType.RECORDING:
        seconds = update.seconds_remaining or 0
        if seconds % 15 == 0 or seconds <= 5:
            return f"  Recording ({update.content} left, Enter to stop)"
        return None
    if update.update_type is UpdateType.ERROR:
        return f"!! {update.content}"
    if update.update_type is UpdateType.STATUS:
        return f"... {update.content}"
    return None


async def print_updates(publisher: SessionUpdatePublisher) -> None:
    queue = await publisher.subscribe()
    try:
        while True:
            line = render(await queue.get())
            if line:
                print(line, flush=True)
    finally:
        await publisher.unsubscribe(queue)


async def load_resume(path: Path) -> Blob:
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    async with aiofiles.open(path, "rb") as f:
        data = await f.read()
    return Blob(data=data, mime_type=mime_type, filename=path.name)


async def stop_on_enter(wizard: InterviewWizard) -> None:
    while True:
        await read_line()
        if wizard.request_stop():
            print("  Answer stopped.", flush=True)


# =============================================================================
# Interview
# =============================================================================

async def run(candidate: CandidateProfile, job_id: str, resume_path: Path) -> int:
    try:
        settings = load_settings()
        services = build_services(settings)
    except (RuntimeError, ValueError) as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG_ERROR

    publisher = SessionUpdatePublisher()
    wizard = InterviewWizard(candidate, job_id, services, settings, publisher)
    printer = asyncio.create_task(print_updates(publisher))

    try:
        try:
            state = await wizard.start()
        except GuardError as exc:
            print(f"!! {exc}")
            return EXIT_GUARD_FAILED

        print(f"\nInterview for {state.job.title}")
        print(
            INSTRUCTIONS.format(
                count=settings.question_count,
                countdown=settings.countdown_seconds,
                answer=settings.answer_seconds,
            )
        )
        await read_line()
        await wizard.acknowledge_instructions()

        while True:
            try:
                resume = await load_resume(resume_path)
            except OSError as exc:
                print(f"!! Cannot read {resume_path}: {exc}")
                resume = None

            if resume is not None:
                state = await wizard.submit_resume(resume)
                if not isinstance(state, AwaitingResumeUpload):
                    break

            answer = await read_line("Resume path (blank to quit): ")
            if not answer:
                return EXIT_INTERRUPTED
            resume_path = Path(answer).expanduser()

        stopper = asyncio.create_task(stop_on_enter(wizard))
        try:
            state = await wizard.run_interview()
        finally:
            stopper.cancel()

        if isinstance(state, Done):
            record = state.record
            print(f"\nInterview submitted ({state.record_id}).")
            print(f"  Overall: {record.score}  Resume: {record.resume_score}  Q&A: {record.qna_score}")
            return EXIT_SUCCESS

        print(f"\n!! {state.error_message}")
        return EXIT_SUBMISSION_FAILED
    finally:
        printer.cancel()


def main(
    job_id: str,
    candidate_id: str,
    resume_path: Path,
    name: str = "",
    email: str = "",
    experience: float = 0,
) -> int:
    """
    Main entry point for the console runner.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    candidate = CandidateProfile(
        candidate_id=candidate_id,
        full_name=name,
        email=email,
        experience_years=experience,
    )
    try:
        return asyncio.run(run(candidate, job_id, resume_path))
    except KeyboardInterrupt:
        logger.info("\nInterview interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """
    Command-line interface entry point with argument parsing.
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Take an AI-generated video interview from the terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
    CLOUDINARY_CLOUD_NAME       Cloudinary cloud (required)
    CLOUDINARY_UPLOAD_PRESET    Unsigned upload preset (required)
    ASSEMBLYAI_API_KEY          AssemblyAI API key (required)
    OPENAI_API_KEY              OpenAI key, or the AZURE_OPENAI_* variables
    INTERVIEW_DATA_DIR          Jobs and interview records (default: ./data)
        """,
    )

    parser.add_argument("--job-id", required=True, help="Job to interview for")
    parser.add_argument("--candidate-id", required=True, help="Candidate identifier")
    parser.add_argument("--resume", required=True, type=Path, help="Resume PDF or image")
    parser.add_argument("--name", default="", help="Candidate full name")
    parser.add_argument("--email", default="", help="Candidate email")
    parser.add_argument(
        "--experience",
        type=float,
        default=0,
        help="Years of experience (default: 0)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    exit_code = main(
        job_id=args.job_id,
        candidate_id=args.candidate_id,
        resume_path=args.resume.expanduser(),
        name=args.name,
        email=args.email,
        experience=args.experience,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()
