"""Composition of verification, submission and UI event fan-out."""
from __future__ import annotations

import asyncio
import logging
from asyncio import QueueEmpty
from typing import AsyncIterator, List, Optional

from .backend.http_client import PaymentsHttpClient
from .config import Settings, get_settings
from .sensors.camera import CameraCapability, OpenCVCamera
from .state import ControllerEvent
from .submission import PaymentGateway, SubmissionController
from .verification import VerificationController
from .view import WorkflowView, render

logger = logging.getLogger(__name__)


class PaymentWorkflow:
    """Wires the controllers together and broadcasts every change to UI subscribers."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        camera: Optional[CameraCapability] = None,
        gateway: Optional[PaymentGateway] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._camera = camera or OpenCVCamera(self.settings.camera)
        self._gateway = gateway or PaymentsHttpClient(self.settings)
        self._ui_subscribers: List[asyncio.Queue[ControllerEvent]] = []
        self._stopped = False

        self.verification = VerificationController(self._camera)
        self.submission = SubmissionController(
            self._gateway,
            token_source=lambda: self.verification.token,
            user_id=self.settings.payment_user_id,
            default_currency=self.settings.default_currency,
        )
        self.verification.register_callback(self._on_verification_change)
        self.submission.register_callback(self._on_submission_change)

    def view(self) -> WorkflowView:
        return render(self.verification, self.submission)

    async def start(self) -> None:
        logger.info(
            "Payment workflow started (payments API %s, camera available=%s)",
            self.settings.payments_api_url,
            self._camera.available,
        )

    async def stop(self) -> None:
        """Teardown: camera release is unconditional, HTTP close is best effort."""
        if self._stopped:
            return
        self._stopped = True
        logger.info("Stopping payment workflow")
        self.verification.close()
        aclose = getattr(self._gateway, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.warning("Error closing payments client: %s", e)
        logger.info("Payment workflow stopped")

    def register_ui(self) -> asyncio.Queue[ControllerEvent]:
        queue: asyncio.Queue[ControllerEvent] = asyncio.Queue(maxsize=self.settings.performance.ui_event_queue_size)
        self._ui_subscribers.append(queue)
        return queue

    def unregister_ui(self, queue: asyncio.Queue[ControllerEvent]) -> None:
        if queue in self._ui_subscribers:
            self._ui_subscribers.remove(queue)

    async def preview_stream(self) -> AsyncIterator[bytes]:
        """Preview frames for one client, buffered in a bounded queue that keeps the newest."""
        queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=self.settings.performance.preview_queue_size)

        async def pump() -> None:
            try:
                async for frame in self.verification.preview_frames():
                    _put_latest(queue, frame)
            except Exception:
                logger.exception("Preview pump crashed")
            await queue.put(None)

        reader = asyncio.create_task(pump(), name="preview-pump")
        try:
            while True:
                frame = await queue.get()
                if frame is None:
                    break
                yield frame
        finally:
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

    async def _on_verification_change(self) -> None:
        await self._broadcast(ControllerEvent(type="state", source="verification", data=self.view().model_dump(mode="json")))

    async def _on_submission_change(self) -> None:
        await self._broadcast(ControllerEvent(type="state", source="submission", data=self.view().model_dump(mode="json")))

    async def _broadcast(self, event: ControllerEvent) -> None:
        """Broadcast event to all UI subscribers, dropping the oldest when full."""
        for queue in list(self._ui_subscribers):
            try:
                _put_latest(queue, event)
            except Exception as e:
                logger.warning("Failed to broadcast event to subscriber: %s", e)


def _put_latest(queue: asyncio.Queue, item) -> None:
    if queue.full():
        try:
            queue.get_nowait()
        except QueueEmpty:
            pass
    queue.put_nowait(item)


__all__ = ["PaymentWorkflow"]
