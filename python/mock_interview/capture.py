"""
Media Capture Session.

Owns the single camera/microphone handle for the lifetime of the interview
loop and hands out recorded clips one at a time.

Concurrency:
    Only one recorder may be bound to the device at a time. A second
    ``start_recording`` while a clip is in progress raises
    ``CaptureBusyError`` instead of opening a parallel recorder.
"""

from __future__ import annotations

import logging

from .collaborators import CaptureDevice
from .errors import CaptureBusyError, CaptureDeviceError
from .models import Blob


__all__ = ["MediaCaptureSession"]


logger = logging.getLogger(__name__)


class MediaCaptureSession:
    """
    Exclusive owner of one capture device.

    Example:
        >>> capture = MediaCaptureSession(device)
        >>> await capture.acquire()
        >>> await capture.start_recording()
        >>> clip = await capture.stop_recording()
        >>> await capture.release()
    """

    def __init__(self, device: CaptureDevice) -> None:
        self._device = device
        self._acquired = False
        self._recording = False
        self._clips_recorded = 0

    @property
    def is_acquired(self) -> bool:
        return self._acquired

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def clips_recorded(self) -> int:
        return self._clips_recorded

    async def acquire(self) -> None:
        """
        Open the device. Calling it again while acquired is a no-op.

        Raises:
            CaptureDeviceError: If camera or microphone access is denied.
        """
        if self._acquired:
            return
        await self._device.open()
        self._acquired = True
        logger.info("Capture device acquired")

    async def start_recording(self) -> None:
        """
        Bind a recorder to the device.

        Raises:
            CaptureDeviceError: If the device was never acquired.
            CaptureBusyError: If a recording is already in progress.
        """
        if not self._acquired:
            raise CaptureDeviceError("Capture device is not acquired")
        if self._recording:
            raise CaptureBusyError("A recording is already in progress")

        await self._device.start_recording()
        self._recording = True
        logger.debug("Recording started (clip #%d)", self._clips_recorded + 1)

    async def stop_recording(self) -> Blob:
        """
        Finish the current clip.

        Raises:
            CaptureDeviceError: If nothing is being recorded.
        """
        if not self._recording:
            raise CaptureDeviceError("No recording in progress")
        try:
            clip = await self._device.stop_recording()
        finally:
            self._recording = False

        self._clips_recorded += 1
        logger.info("Recorded clip #%d (%d bytes)", self._clips_recorded, clip.size)
        return clip

    async def release(self) -> None:
        """Stop any dangling recording and close the device."""
        if not self._acquired:
            return
        if self._recording:
            logger.info("Discarding in-progress recording on release")
            try:
                await self._device.stop_recording()
            except CaptureDeviceError as exc:
                logger.warning("Failed to stop recording on release: %s", exc)
            finally:
                self._recording = False

        await self._device.close()
        self._acquired = False
        logger.info("Capture device released")
