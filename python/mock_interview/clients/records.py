"""
JSON file record store.

Layout under ``data_dir``:
    jobs.json                      list of {"id", "title", "description"}
    interviews/<record_id>.json    one immutable interview record each

Records are created with exclusive-create semantics and never rewritten.
The submission timestamp is assigned here, at write time.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import aiofiles
from pydantic import ValidationError

from ..errors import RecordStoreError
from ..models import InterviewRecord, Job


__all__ = ["JsonRecordStore"]


logger = logging.getLogger(__name__)


JOBS_FILE = "jobs.json"
INTERVIEWS_DIR = "interviews"


def _format_utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _new_record_id() -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"int_{stamp}_{secrets.token_hex(3)}"


class JsonRecordStore:
    """
    Record store on the local filesystem.

    Example:
        >>> store = JsonRecordStore(Path("./data"))
        >>> await store.add_job(Job(id="job_1", title="Backend Engineer"))
        >>> record_id, stored = await store.create_record(record)
        >>> record_id
        'int_20261019_103000_a1b2c3'
    """

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.jobs_path = self.data_dir / JOBS_FILE
        self.interviews_dir = self.data_dir / INTERVIEWS_DIR

    def _ensure_dirs(self) -> None:
        try:
            self.interviews_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RecordStoreError(f"Cannot create {self.interviews_dir}: {exc}") from exc

    async def _read_json(self, path: Path) -> object:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, json.JSONDecodeError) as exc:
            raise RecordStoreError(f"Failed to read {path}: {exc}") from exc

    # -------------------------------------------------------------------------
    # Jobs
    # -------------------------------------------------------------------------

    async def list_jobs(self) -> list[Job]:
        if not self.jobs_path.exists():
            return []
        raw = await self._read_json(self.jobs_path)
        if not isinstance(raw, list):
            raise RecordStoreError(f"{self.jobs_path} must contain a list of jobs")
        try:
            return [Job.model_validate(item) for item in raw]
        except ValidationError as exc:
            raise RecordStoreError(f"Invalid job in {self.jobs_path}: {exc}") from exc

    async def get_job(self, job_id: str) -> Optional[Job]:
        for job in await self.list_jobs():
            if job.id == job_id:
                return job
        return None

    async def add_job(self, job: Job) -> None:
        """Insert or replace a job in the jobs file."""
        jobs = [existing for existing in await self.list_jobs() if existing.id != job.id]
        jobs.append(job)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        payload = json.dumps([j.model_dump() for j in jobs], indent=2)
        try:
            async with aiofiles.open(self.jobs_path, "w", encoding="utf-8") as f:
                await f.write(payload)
        except OSError as exc:
            raise RecordStoreError(f"Failed to write {self.jobs_path}: {exc}") from exc

    # -------------------------------------------------------------------------
    # Interview Records
    # -------------------------------------------------------------------------

    async def query_existing(self, candidate_id: str, job_id: str) -> bool:
        """True if any stored record matches this candidate and job."""
        if not self.interviews_dir.exists():
            return False
        for path in sorted(self.interviews_dir.glob("*.json")):
            document = await self._read_json(path)
            if not isinstance(document, dict):
                logger.warning("Skipping malformed record file %s", path)
                continue
            if document.get("candidateUID") == candidate_id and document.get("jobId") == job_id:
                return True
        return False

    async def create_record(self, record: InterviewRecord) -> tuple[str, InterviewRecord]:
        """
        Persist a new record.

        Returns:
            The record id and the record as written, with ``submitted_at`` set.

        Raises:
            RecordStoreError: If the file cannot be created.
        """
        self._ensure_dirs()
        record_id = _new_record_id()
        path = self.interviews_dir / f"{record_id}.json"

        stamped = record.model_copy(update={"submitted_at": _format_utc_timestamp()})
        payload = json.dumps(stamped.to_document(), indent=2, ensure_ascii=False)

        try:
            async with aiofiles.open(path, "x", encoding="utf-8") as f:
                await f.write(payload)
        except FileExistsError as exc:
            raise RecordStoreError(f"Record {record_id} already exists") from exc
        except OSError as exc:
            raise RecordStoreError(f"Failed to write {path}: {exc}") from exc

        logger.info("Wrote interview record to %s", path)
        return record_id, stamped

    async def load_record(self, record_id: str) -> InterviewRecord:
        path = self.interviews_dir / f"{record_id}.json"
        document = await self._read_json(path)
        try:
            return InterviewRecord.model_validate(document)
        except ValidationError as exc:
            raise RecordStoreError(f"Invalid record in {path}: {exc}") from exc
