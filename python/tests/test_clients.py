"""
Tests for the vendor adapters and settings loading.

HTTP adapters run against ``httpx.MockTransport``; the generator runs with
``Runner.run`` patched out; the record store writes to ``tmp_path``; ffmpeg is replaced by a fake child
process.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import asyncio
import json
import re
from pathlib import Path

import httpx
import pytest

from mock_interview import (
    Blob,
    InlineImage,
    InterviewRecord,
    MediaKind,
    RasterizationError,
    RecordStoreError,
    ScoreCard,
    StorageError,
    TranscriptionError,
    TranscriptStatus,
    load_settings,
)
from mock_interview.clients import (
    AgentContentGenerator,
    AssemblyAITranscription,
    CloudinaryStorage,
    EspeakNarrator,
    FfmpegCaptureDevice,
    JsonRecordStore,
    PdfRasterizer,
    build_services,
)
from mock_interview.clients import generation
from mock_interview.clients.generation import (
    GeneratedQuestions,
    build_feedback_prompt,
    build_question_prompt,
    normalize_questions,
)
from mock_interview.config import DEFAULT_ANSWER_SECONDS, DEFAULT_POLL_MAX_ATTEMPTS
from mock_interview.errors import GenerationError
from tests.mock_data import (
    CANDIDATE_ID,
    CANNED_FEEDBACK,
    JOB_ID,
    RESUME_PDF,
    RESUME_PNG,
    SCRIPTED_ANSWERS,
    SCRIPTED_QUESTIONS,
    make_answered_session,
    make_candidate,
    make_job,
)


def make_record(candidate_id: str = CANDIDATE_ID) -> InterviewRecord:
    return InterviewRecord.from_session(
        session=make_answered_session(),
        candidate=make_candidate(candidate_id),
        transcript_texts=SCRIPTED_ANSWERS,
        feedback=CANNED_FEEDBACK,
        scores=ScoreCard(resume="80/100", qna="70/100", overall="74/100"),
        tab_switch_count=1,
    )


# =============================================================================
# Cloudinary
# =============================================================================

class TestCloudinaryStorage:
    """Tests for CloudinaryStorage."""

    @pytest.mark.asyncio
    async def test_upload_posts_to_kind_endpoint(self):
        """Uploads go to the image or video endpoint with the preset."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/a.webm"})

        storage = CloudinaryStorage("demo", "unsigned", transport=httpx.MockTransport(handler))
        clip = Blob(data=b"webm", mime_type="video/webm", filename="answer_1.webm")

        url = await storage.upload(clip, MediaKind.VIDEO)

        assert url == "https://res.cloudinary.com/demo/a.webm"
        assert str(seen[0].url) == "https://api.cloudinary.com/v1_1/demo/video/upload"
        body = seen[0].read()
        assert b'name="upload_preset"' in body
        assert b"unsigned" in body
        assert b'filename="answer_1.webm"' in body

    def test_image_endpoint(self):
        storage = CloudinaryStorage("demo", "unsigned")
        assert storage.upload_url(MediaKind.IMAGE) == "https://api.cloudinary.com/v1_1/demo/image/upload"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(400, json={"error": {"message": "Upload preset not found"}}),
            httpx.Response(200, json={"error": "Invalid image file"}),
            httpx.Response(200, json={"public_id": "abc"}),
            httpx.Response(502, text="bad gateway"),
        ],
    )
    @pytest.mark.asyncio
    async def test_upload_errors_raise(self, response):
        storage = CloudinaryStorage(
            "demo", "unsigned", transport=httpx.MockTransport(lambda request: response)
        )

        with pytest.raises(StorageError):
            await storage.upload(RESUME_PNG, MediaKind.IMAGE)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        storage = CloudinaryStorage("demo", "unsigned", transport=httpx.MockTransport(handler))

        with pytest.raises(StorageError, match="connection refused"):
            await storage.upload(RESUME_PNG, MediaKind.IMAGE)

    @pytest.mark.asyncio
    async def test_fetch_returns_blob(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, content=b"png-bytes", headers={"content-type": "image/png; charset=binary"}
            )

        storage = CloudinaryStorage("demo", "unsigned", transport=httpx.MockTransport(handler))

        blob = await storage.fetch("https://res.cloudinary.com/demo/resume.png")

        assert blob.data == b"png-bytes"
        assert blob.mime_type == "image/png"
        assert blob.filename == "resume.png"

    @pytest.mark.asyncio
    async def test_fetch_missing_raises(self):
        storage = CloudinaryStorage(
            "demo", "unsigned", transport=httpx.MockTransport(lambda request: httpx.Response(404))
        )

        with pytest.raises(StorageError):
            await storage.fetch("https://res.cloudinary.com/demo/gone.png")

    def test_requires_credentials(self):
        with pytest.raises(ValueError):
            CloudinaryStorage("", "unsigned")


# =============================================================================
# AssemblyAI
# =============================================================================

class TestAssemblyAITranscription:
    """Tests for AssemblyAITranscription."""

    @pytest.mark.asyncio
    async def test_request_returns_job_id(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "tx_123", "status": "queued"})

        service = AssemblyAITranscription("key_abc", transport=httpx.MockTransport(handler))

        job_id = await service.request_transcription("https://res.cloudinary.com/demo/a.webm")

        assert job_id == "tx_123"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/v2/transcript"
        assert seen[0].headers["authorization"] == "key_abc"
        assert json.loads(seen[0].content) == {"audio_url": "https://res.cloudinary.com/demo/a.webm"}

    @pytest.mark.asyncio
    async def test_request_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "Authentication error, API token missing/invalid"})

        service = AssemblyAITranscription("bad", transport=httpx.MockTransport(handler))

        with pytest.raises(TranscriptionError, match="Authentication error"):
            await service.request_transcription("https://example.com/a.webm")

    @pytest.mark.parametrize(
        "payload, status, text",
        [
            ({"status": "queued"}, TranscriptStatus.QUEUED, None),
            ({"status": "processing"}, TranscriptStatus.PROCESSING, None),
            ({"status": "completed", "text": "I led the migration."}, TranscriptStatus.COMPLETED, "I led the migration."),
            ({"status": "error", "error": "audio too short"}, TranscriptStatus.ERROR, None),
        ],
    )
    @pytest.mark.asyncio
    async def test_poll_maps_status(self, payload, status, text):
        service = AssemblyAITranscription(
            "key", transport=httpx.MockTransport(lambda request: httpx.Response(200, json=payload))
        )

        report = await service.poll_status("tx_1")

        assert report.status is status
        assert report.text == text

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "internal"}),
            httpx.Response(200, json={"status": "mystery"}),
            httpx.Response(200, text="not json"),
        ],
    )
    @pytest.mark.asyncio
    async def test_poll_failures_report_error(self, response):
        """Poll failures are reported, never raised."""
        service = AssemblyAITranscription(
            "key", transport=httpx.MockTransport(lambda request: response)
        )

        report = await service.poll_status("tx_1")

        assert report.status is TranscriptStatus.ERROR
        assert report.error


# =============================================================================
# Generation
# =============================================================================

class TestNormalizeQuestions:
    """Tests for cleaning model output into questions."""

    def test_strips_numbering_and_bold(self):
        raw = [
            "1. **Tell me about the services you built in Go?**",
            "- How do you approach code review on a busy team?",
        ]

        assert normalize_questions(raw) == [
            "Tell me about the services you built in Go?",
            "How do you approach code review on a busy team?",
        ]

    def test_splits_lines_and_drops_fragments(self):
        raw = ["Here are your questions:\n2. Short one?\n3. Describe a difficult bug you fixed recently."]

        assert normalize_questions(raw) == [
            "Here are your questions:",
            "Describe a difficult bug you fixed recently.",
        ]

    def test_limits_count(self):
        assert normalize_questions(SCRIPTED_QUESTIONS * 2, limit=5) == SCRIPTED_QUESTIONS


class TestPrompts:
    """Tests for prompt construction."""

    def test_question_prompt_names_job_and_experience(self):
        prompt = build_question_prompt("Backend Engineer", "Build APIs", "2 years", 5)

        assert 'Generate 5 diverse interview questions' in prompt
        assert '"Backend Engineer"' in prompt
        assert "2 years" in prompt

    def test_feedback_prompt_marks_missing_transcripts(self):
        prompt = build_feedback_prompt(
            "Backend Engineer",
            "Build APIs",
            "2 years",
            SCRIPTED_QUESTIONS[:2],
            ["I used Kafka.", ""],
        )

        assert "Answer 1 Transcription: I used Kafka." in prompt
        assert "Answer 2 Transcription: (Transcription Unavailable)" in prompt
        assert prompt.count("---") == 3


class FakeRunResult:
    def __init__(self, final_output):
        self.final_output = final_output

    def final_output_as(self, cls):
        assert isinstance(self.final_output, cls)
        return self.final_output


@pytest.fixture
def openai_env(monkeypatch):
    for name in (
        "AZURE_OPENAI_ENDPOINT",
        "AZURE_OPENAI_KEY",
        "AZURE_OPENAI_DEPLOYMENT",
        "OPENAI_API_TYPE",
        "OPENAI_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")


class TestAgentContentGenerator:
    """Tests for AgentContentGenerator with the agent runner patched."""

    @pytest.mark.asyncio
    async def test_generate_questions(self, openai_env, monkeypatch):
        calls = []

        async def fake_run(agent, items):
            calls.append((agent, items))
            return FakeRunResult(
                GeneratedQuestions(questions=[f"{n}. {q}" for n, q in enumerate(SCRIPTED_QUESTIONS, 1)])
            )

        monkeypatch.setattr(generation.Runner, "run", fake_run)
        generator = AgentContentGenerator()

        questions = await generator.generate_questions(
            "Backend Engineer", "Build APIs", "2 years", InlineImage.from_blob(RESUME_PNG)
        )

        assert questions == SCRIPTED_QUESTIONS
        assert generator.model == "gpt-4o-mini"
        agent, items = calls[0]
        assert agent.name == "Question Writer"
        content = items[0]["content"]
        assert content[0]["type"] == "input_text"
        assert content[1]["image_url"].startswith("data:image/png;base64,")

    @pytest.mark.asyncio
    async def test_generate_feedback(self, openai_env, monkeypatch):
        async def fake_run(agent, items):
            assert agent.name == "Interview Evaluator"
            return FakeRunResult(CANNED_FEEDBACK + "\n")

        monkeypatch.setattr(generation.Runner, "run", fake_run)
        generator = AgentContentGenerator()

        feedback = await generator.generate_feedback(
            "Backend Engineer",
            "Build APIs",
            "2 years",
            InlineImage.from_blob(RESUME_PNG),
            SCRIPTED_QUESTIONS,
            SCRIPTED_ANSWERS,
        )

        assert feedback == CANNED_FEEDBACK

    @pytest.mark.asyncio
    async def test_empty_feedback_gets_placeholder(self, openai_env, monkeypatch):
        async def fake_run(agent, items):
            return FakeRunResult("")

        monkeypatch.setattr(generation.Runner, "run", fake_run)
        generator = AgentContentGenerator()

        feedback = await generator.generate_feedback(
            "Backend Engineer", "", "2 years", InlineImage.from_blob(RESUME_PNG), [], []
        )

        assert feedback == "AI feedback generation failed."

    @pytest.mark.asyncio
    async def test_runner_failure_raises(self, openai_env, monkeypatch):
        async def fake_run(agent, items):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(generation.Runner, "run", fake_run)
        generator = AgentContentGenerator()

        with pytest.raises(GenerationError, match="rate limited"):
            await generator.generate_questions(
                "Backend Engineer", "Build APIs", "2 years", InlineImage.from_blob(RESUME_PNG)
            )

    def test_partial_azure_config_rejected(self, openai_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_TYPE", "azure")
        monkeypatch.setenv("AZURE_OPENAI_ENDPOINT", "https://example.openai.azure.com")

        with pytest.raises(ValueError, match="AZURE_OPENAI_KEY"):
            AgentContentGenerator()


# =============================================================================
# Record Store
# =============================================================================

class TestJsonRecordStore:
    """Tests for JsonRecordStore."""

    @pytest.mark.asyncio
    async def test_jobs_round_trip(self, tmp_path: Path):
        store = JsonRecordStore(tmp_path)
        assert await store.list_jobs() == []

        await store.add_job(make_job())
        await store.add_job(make_job(title="Senior Backend Engineer"))

        jobs = await store.list_jobs()
        assert len(jobs) == 1
        assert (await store.get_job(JOB_ID)).title == "Senior Backend Engineer"
        assert await store.get_job("job_missing") is None

    @pytest.mark.asyncio
    async def test_create_record_writes_document(self, tmp_path: Path):
        """Records are stamped at write time and stored with camelCase keys."""
        store = JsonRecordStore(tmp_path)

        record_id, stored = await store.create_record(make_record())

        assert re.fullmatch(r"int_\d{8}_\d{6}_[0-9a-f]{6}", record_id)
        document = json.loads((tmp_path / "interviews" / f"{record_id}.json").read_text())
        assert document["candidateUID"] == CANDIDATE_ID
        assert document["jobId"] == JOB_ID
        assert document["submittedAt"].endswith("Z")
        assert document["meta"] == {"tabSwitchCount": 1}
        assert document["transcriptTexts"] == SCRIPTED_ANSWERS
        assert document["qnaScore"] == "70/100"

        assert stored.submitted_at == document["submittedAt"]
        loaded = await store.load_record(record_id)
        assert loaded == stored
        assert loaded.video_urls == [f"blob://{n}" for n in range(1, 6)]

    @pytest.mark.asyncio
    async def test_query_existing(self, tmp_path: Path):
        store = JsonRecordStore(tmp_path)
        assert await store.query_existing(CANDIDATE_ID, JOB_ID) is False

        await store.create_record(make_record())

        assert await store.query_existing(CANDIDATE_ID, JOB_ID) is True
        assert await store.query_existing("uid_someone_else", JOB_ID) is False
        assert await store.query_existing(CANDIDATE_ID, "job_other") is False

    @pytest.mark.asyncio
    async def test_corrupt_jobs_file_raises(self, tmp_path: Path):
        (tmp_path / "jobs.json").write_text("{not json")
        store = JsonRecordStore(tmp_path)

        with pytest.raises(RecordStoreError):
            await store.get_job(JOB_ID)


# =============================================================================
# Rasterizer / Narrator
# =============================================================================

class TestPdfRasterizer:
    """Tests for PdfRasterizer input checks."""

    @pytest.mark.asyncio
    async def test_rejects_non_pdf(self):
        with pytest.raises(RasterizationError, match="Unsupported resume type"):
            await PdfRasterizer().rasterize(RESUME_PNG)

    @pytest.mark.asyncio
    async def test_conversion_failure_wrapped(self, monkeypatch):
        from pdf2image.exceptions import PDFPageCountError

        def broken(data, **kwargs):
            raise PDFPageCountError("Unable to get page count")

        monkeypatch.setattr("mock_interview.clients.rasterizer.convert_from_bytes", broken)

        with pytest.raises(RasterizationError, match="PDF conversion failed"):
            await PdfRasterizer().rasterize(RESUME_PDF)


class TestEspeakNarrator:
    """Tests for EspeakNarrator without a synthesizer installed."""

    @pytest.mark.asyncio
    async def test_missing_executable_is_silent(self):
        narrator = EspeakNarrator(executable="definitely-not-espeak")

        await narrator.speak("Tell me about yourself.")
        narrator.cancel()

        assert narrator.executable is None


# =============================================================================
# ffmpeg
# =============================================================================

class FakeFfmpegProcess:
    """Child process that only exits when killed."""

    def __init__(self) -> None:
        self.returncode = None
        self.killed = False
        self.communicating = asyncio.Event()
        self._exited = asyncio.Event()

    async def communicate(self, input=None):
        self.communicating.set()
        await self._exited.wait()
        return b"", b""

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class TestFfmpegCaptureDevice:
    """Tests for FfmpegCaptureDevice with a fake ffmpeg child."""

    @pytest.fixture
    def process(self, monkeypatch):
        process = FakeFfmpegProcess()

        async def fake_exec(*args, **kwargs):
            return process

        monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)
        return process

    @pytest.fixture
    def device(self, tmp_path):
        device = FfmpegCaptureDevice()
        workdir = tmp_path / "clips"
        workdir.mkdir()
        device._workdir = workdir
        return device

    @pytest.mark.asyncio
    async def test_cancelled_stop_kills_ffmpeg(self, process, device):
        """Cancelling stop_recording() kills the child and close() still reaps it."""
        await device.start_recording()

        stop = asyncio.create_task(device.stop_recording())
        await asyncio.wait_for(process.communicating.wait(), timeout=5)
        stop.cancel()
        with pytest.raises(asyncio.CancelledError):
            await stop

        assert process.killed is True
        await device.close()
        assert device._process is None
        assert device._workdir is None

    @pytest.mark.asyncio
    async def test_close_kills_running_recording(self, process, device):
        await device.start_recording()

        await device.close()

        assert process.killed is True
        assert device._process is None


# =============================================================================
# Settings
# =============================================================================

SETTINGS_ENV = (
    "INTERVIEW_COUNTDOWN_SECONDS",
    "INTERVIEW_ANSWER_SECONDS",
    "INTERVIEW_TICK_SECONDS",
    "INTERVIEW_QUESTION_COUNT",
    "TRANSCRIPT_POLL_INTERVAL_SECONDS",
    "TRANSCRIPT_POLL_MAX_ATTEMPTS",
    "INTERVIEW_DATA_DIR",
    "HTTP_TIMEOUT_SECONDS",
    "OPENAI_MODEL",
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_UPLOAD_PRESET",
    "ASSEMBLYAI_API_KEY",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self, clean_env):
        settings = load_settings()

        assert settings.answer_seconds == DEFAULT_ANSWER_SECONDS
        assert settings.poll_max_attempts == DEFAULT_POLL_MAX_ATTEMPTS
        assert settings.question_count == 5
        assert settings.data_dir == Path("data")
        assert settings.cloudinary_cloud_name is None

    def test_environment_overrides(self, clean_env, tmp_path: Path):
        clean_env.setenv("INTERVIEW_ANSWER_SECONDS", "90")
        clean_env.setenv("TRANSCRIPT_POLL_MAX_ATTEMPTS", "20")
        clean_env.setenv("INTERVIEW_DATA_DIR", str(tmp_path))
        clean_env.setenv("CLOUDINARY_CLOUD_NAME", "demo")

        settings = load_settings()

        assert settings.answer_seconds == 90
        assert settings.poll_max_attempts == 20
        assert settings.data_dir == tmp_path
        assert settings.cloudinary_cloud_name == "demo"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("INTERVIEW_ANSWER_SECONDS", "two minutes"),
            ("INTERVIEW_ANSWER_SECONDS", "0"),
            ("TRANSCRIPT_POLL_MAX_ATTEMPTS", "0"),
            ("INTERVIEW_TICK_SECONDS", "-1"),
        ],
    )
    def test_invalid_values_raise(self, clean_env, name, value):
        clean_env.setenv(name, value)

        with pytest.raises(RuntimeError, match=name):
            load_settings()

    def test_build_services_requires_credentials(self, clean_env):
        clean_env.setenv("CLOUDINARY_CLOUD_NAME", "demo")

        with pytest.raises(RuntimeError) as exc_info:
            build_services(load_settings())

        message = str(exc_info.value)
        assert "CLOUDINARY_UPLOAD_PRESET" in message
        assert "ASSEMBLYAI_API_KEY" in message
        assert "CLOUDINARY_CLOUD_NAME" not in message
