"""
Camera capability for the verification preview.
Opens a local OpenCV capture device on demand and hands out a single live stream.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import AsyncIterator, Optional, Protocol

import numpy as np

from ..config import CameraSettings
from ..errors import AcquisitionDenied, CapabilityUnavailable

# Optional deps
try:
    import cv2  # type: ignore
except Exception:
    cv2 = None


logger = logging.getLogger(__name__)


class MediaHandle(Protocol):
    """A live camera stream; ``stop()`` must release every underlying track."""

    @property
    def active(self) -> bool: ...

    def stop(self) -> None: ...

    def frames(self) -> AsyncIterator[bytes]: ...


class CameraCapability(Protocol):
    """Device-media capability consumed by the verification controller."""

    @property
    def available(self) -> bool: ...

    async def acquire(self) -> MediaHandle: ...


class VideoStream:
    """Exclusive handle on an opened capture device."""

    def __init__(self, capture, *, jpeg_quality: int = 85, frame_interval: float = 0.033) -> None:
        self._capture = capture
        self._jpeg_quality = jpeg_quality
        self._frame_interval = frame_interval
        # read() runs in the executor; release() must not race with it
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def active(self) -> bool:
        return not self._stopped

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._capture.release()
        logger.info("Camera stream released")

    def _read_jpeg(self) -> Optional[bytes]:
        with self._lock:
            if self._stopped:
                return None
            ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return _encode_jpeg(frame, self._jpeg_quality)

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield JPEG frames until the stream is stopped."""
        loop = asyncio.get_running_loop()
        while self.active:
            jpeg = await loop.run_in_executor(None, self._read_jpeg)
            if jpeg:
                yield jpeg
            await asyncio.sleep(self._frame_interval)


class OpenCVCamera:
    """Camera capability backed by ``cv2.VideoCapture``."""

    def __init__(self, settings: Optional[CameraSettings] = None) -> None:
        self.settings = settings or CameraSettings()

    @property
    def available(self) -> bool:
        return cv2 is not None

    async def acquire(self) -> VideoStream:
        if cv2 is None:
            raise CapabilityUnavailable(
                "This device does not support camera access.",
                log_message="OpenCV not installed",
            )
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._open)
        try:
            capture = await asyncio.shield(future)
        except asyncio.CancelledError:
            # The open keeps running in its thread; release whatever it returns
            future.add_done_callback(_release_abandoned)
            raise
        logger.info(
            "Camera %d opened (%dx%d@%d)",
            self.settings.device_index,
            self.settings.resolution_width,
            self.settings.resolution_height,
            self.settings.fps,
        )
        return VideoStream(
            capture,
            jpeg_quality=self.settings.jpeg_quality,
            frame_interval=self.settings.preview_frame_interval,
        )

    def _open(self):
        index = self.settings.device_index
        capture = cv2.VideoCapture(index)
        if not capture.isOpened():
            capture.release()
            raise AcquisitionDenied(
                "Unable to access the camera. Check permissions.",
                log_message=f"Failed to open camera {index}",
            )
        try:
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.settings.resolution_width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.settings.resolution_height)
            capture.set(cv2.CAP_PROP_FPS, self.settings.fps)
        except Exception as exc:
            capture.release()
            raise AcquisitionDenied(
                "Unable to access the camera. Check permissions.",
                log_message=f"Failed to configure camera {index}: {exc}",
            ) from exc
        return capture


def _release_abandoned(future: asyncio.Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    future.result().release()
    logger.info("Released camera opened after acquisition was cancelled")


def _encode_jpeg(image: np.ndarray, quality: int) -> Optional[bytes]:
    try:
        success, encoded = cv2.imencode(".jpg", image, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
        if not success:
            return None
        return encoded.tobytes()
    except Exception:
        logger.exception("Failed to encode JPEG frame")
        return None


__all__ = ["CameraCapability", "MediaHandle", "OpenCVCamera", "VideoStream"]
