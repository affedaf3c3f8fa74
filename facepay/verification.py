"""Camera-backed identity check that mints the payment verification token."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from .errors import CapabilityUnavailable, InvalidTransition
from .media import MediaSlot, discard
from .sensors.camera import CameraCapability
from .state import VerificationStatus

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[], Awaitable[None]]

PROMPT_MESSAGE = "Point your face at the camera to verify your identity."
UNSUPPORTED_MESSAGE = "This device does not support camera access."
DENIED_MESSAGE = "Unable to access the camera. Check permissions."
VERIFIED_MESSAGE = "Identity verified. You can continue with the payment."


@dataclass(frozen=True)
class VerificationSession:
    status: VerificationStatus = VerificationStatus.IDLE
    message: str = ""
    token: Optional[str] = None


def mint_token() -> str:
    return f"valid-{uuid.uuid4()}"


class VerificationController:
    """
    Owns the camera handle and the verification token.

    The token is present only while the status is VERIFIED. A live handle is
    held only while CAPTURING after a successful acquisition. Every attempt
    bumps an attempt counter so that a stream arriving after a cancel (or a
    newer start) is released instead of adopted.
    """

    def __init__(self, camera: CameraCapability) -> None:
        self._camera = camera
        self._session = VerificationSession()
        self._media = MediaSlot()
        self._attempt = 0
        self._closed = False
        self._callbacks: list[ChangeCallback] = []

    @property
    def session(self) -> VerificationSession:
        return self._session

    @property
    def status(self) -> VerificationStatus:
        return self._session.status

    @property
    def message(self) -> str:
        return self._session.message

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def capture_active(self) -> bool:
        return self._media.held

    def register_callback(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    async def start_verification(self) -> None:
        if self._closed:
            raise InvalidTransition("Verification is closed", log_message="start after teardown")
        self._attempt += 1
        attempt = self._attempt
        self._media.release()

        if not self._camera.available:
            logger.warning("Camera capability missing; verification cannot start")
            await self._set(VerificationStatus.ERROR, UNSUPPORTED_MESSAGE)
            return

        await self._set(VerificationStatus.CAPTURING, PROMPT_MESSAGE)
        logger.info("Verification attempt %d: requesting camera", attempt)
        try:
            handle = await self._camera.acquire()
        except CapabilityUnavailable as exc:
            logger.warning("Verification attempt %d: %s", attempt, exc)
            await self._fail(attempt, UNSUPPORTED_MESSAGE)
            return
        except Exception as exc:
            logger.warning("Verification attempt %d: camera acquisition failed - %s", attempt, exc)
            await self._fail(attempt, DENIED_MESSAGE)
            return

        if attempt != self._attempt:
            logger.info("Verification attempt %d superseded; releasing late camera stream", attempt)
            discard(handle)
            return

        self._media.adopt(handle)
        logger.info("Verification attempt %d: live preview active", attempt)
        await self._emit()

    async def confirm_verification(self) -> str:
        if not self._media.held:
            raise InvalidTransition(
                "Start the camera before confirming your identity.",
                log_message=f"confirm in status={self.status.value} without a live preview",
            )
        token = mint_token()
        self._media.release()
        await self._set(VerificationStatus.VERIFIED, VERIFIED_MESSAGE, token=token)
        logger.info("Identity confirmed; token issued %s...", token[:12])
        return token

    async def cancel_verification(self) -> None:
        self._attempt += 1
        released = self._media.release()
        await self._set(VerificationStatus.IDLE, "")
        logger.info("Verification cancelled (camera released=%s)", released)

    def close(self) -> None:
        """Teardown: release any held camera and invalidate pending acquisitions."""
        self._closed = True
        self._attempt += 1
        if self._media.release():
            logger.info("Camera released on teardown")
        self._session = VerificationSession()

    async def preview_frames(self) -> AsyncIterator[bytes]:
        handle = self._media.handle
        if handle is None:
            return
        async for frame in handle.frames():
            yield frame

    async def _fail(self, attempt: int, message: str) -> None:
        if attempt != self._attempt:
            return
        self._media.release()
        await self._set(VerificationStatus.ERROR, message)

    async def _set(self, status: VerificationStatus, message: str, *, token: Optional[str] = None) -> None:
        self._session = VerificationSession(status=status, message=message, token=token)
        await self._emit()

    async def _emit(self) -> None:
        for callback in self._callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("Verification change callback failed")


__all__ = ["VerificationController", "VerificationSession", "mint_token"]
