"""
Question narration through the ``espeak`` command-line synthesizer.

Only one utterance plays at a time; ``cancel()`` kills the current one.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from typing import Optional


__all__ = ["EspeakNarrator"]


logger = logging.getLogger(__name__)


class EspeakNarrator:
    """Speaks text aloud with espeak. Missing binary means silent narration."""

    def __init__(self, executable: str = "espeak", words_per_minute: int = 160) -> None:
        self.executable = shutil.which(executable)
        self.words_per_minute = words_per_minute
        self._process: Optional[asyncio.subprocess.Process] = None
        if self.executable is None:
            logger.warning("%s not found on PATH; narration disabled", executable)

    async def speak(self, text: str) -> None:
        if self.executable is None or not text.strip():
            return
        self.cancel()
        process = await asyncio.create_subprocess_exec(
            self.executable,
            "-s",
            str(self.words_per_minute),
            text,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._process = process
        try:
            await process.wait()
        except asyncio.CancelledError:
            self._kill(process)
            raise
        finally:
            if self._process is process:
                self._process = None

    def cancel(self) -> None:
        if self._process is not None:
            self._kill(self._process)
            self._process = None

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
