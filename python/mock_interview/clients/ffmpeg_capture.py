"""
Camera and microphone capture through ffmpeg.

Each clip is recorded to a temporary WebM file (VP8 at 250 kbit/s, Opus
audio). Stopping sends ``q`` on stdin so ffmpeg finalizes the container,
then the file is read back as a blob.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import aiofiles

from ..errors import CaptureBusyError, CaptureDeviceError
from ..models import Blob


__all__ = ["FfmpegCaptureDevice"]


logger = logging.getLogger(__name__)


VIDEO_BITRATE = "250k"
CLIP_MIME_TYPE = "video/webm"
STOP_TIMEOUT_SECONDS = 10.0


class FfmpegCaptureDevice:
    """
    Linux capture device (v4l2 camera + ALSA microphone).

    Args:
        video_device: Camera device node.
        audio_device: ALSA input name.
        executable: ffmpeg binary name or path.
    """

    def __init__(
        self,
        video_device: str = "/dev/video0",
        audio_device: str = "default",
        executable: str = "ffmpeg",
    ) -> None:
        self.video_device = video_device
        self.audio_device = audio_device
        self._executable_name = executable
        self.executable: Optional[str] = None

        self._workdir: Optional[Path] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._clip_path: Optional[Path] = None
        self._clip_count = 0

    async def open(self) -> None:
        """
        Raises:
            CaptureDeviceError: If ffmpeg or the camera is unavailable.
        """
        self.executable = shutil.which(self._executable_name)
        if self.executable is None:
            raise CaptureDeviceError(f"{self._executable_name} not found on PATH")
        if not Path(self.video_device).exists():
            raise CaptureDeviceError(f"Camera not available: {self.video_device}")
        self._workdir = Path(tempfile.mkdtemp(prefix="mock_interview_"))
        logger.info("Capture device opened (%s, %s)", self.video_device, self.audio_device)

    def _command(self, output: Path) -> list[str]:
        return [
            self.executable or self._executable_name,
            "-hide_banner",
            "-loglevel", "error",
            "-f", "v4l2", "-i", self.video_device,
            "-f", "alsa", "-i", self.audio_device,
            "-c:v", "libvpx", "-b:v", VIDEO_BITRATE,
            "-c:a", "libopus",
            "-y", str(output),
        ]

    async def start_recording(self) -> None:
        if self._workdir is None:
            raise CaptureDeviceError("Capture device is not open")
        if self._process is not None:
            raise CaptureBusyError("ffmpeg is already recording")

        self._clip_count += 1
        self._clip_path = self._workdir / f"answer_{self._clip_count}.webm"
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command(self._clip_path),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureDeviceError(f"Failed to start ffmpeg: {exc}") from exc

    async def stop_recording(self) -> Blob:
        process = self._process
        clip_path = self._clip_path
        if process is None or clip_path is None:
            raise CaptureDeviceError("No recording in progress")

        try:
            _, stderr = await asyncio.wait_for(
                process.communicate(input=b"q"), timeout=STOP_TIMEOUT_SECONDS
            )
        except asyncio.CancelledError:
            # Left on _process so close() reaps it.
            self._kill(process)
            raise
        except asyncio.TimeoutError:
            self._process = None
            self._kill(process)
            await process.wait()
            raise CaptureDeviceError("ffmpeg did not stop in time")
        self._process = None

        if not clip_path.exists():
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise CaptureDeviceError(f"ffmpeg produced no clip: {detail}")

        async with aiofiles.open(clip_path, "rb") as f:
            data = await f.read()
        clip_path.unlink(missing_ok=True)
        return Blob(data=data, mime_type=CLIP_MIME_TYPE, filename=clip_path.name)

    async def close(self) -> None:
        if self._process is not None:
            self._kill(self._process)
            await self._process.wait()
            self._process = None
        if self._workdir is not None:
            shutil.rmtree(self._workdir, ignore_errors=True)
            self._workdir = None
        logger.info("Capture device closed")

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
