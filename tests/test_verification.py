"""
Tests for the camera-backed verification controller
"""
import asyncio

import pytest

from facepay.errors import AcquisitionDenied, CapabilityUnavailable, InvalidTransition
from facepay.state import VerificationStatus
from facepay.verification import (
    DENIED_MESSAGE,
    PROMPT_MESSAGE,
    UNSUPPORTED_MESSAGE,
    VERIFIED_MESSAGE,
    VerificationController,
)

from .conftest import FakeCamera


class TestStartVerification:
    async def test_missing_capability_reports_error_without_acquiring(self):
        camera = FakeCamera(available=False)
        controller = VerificationController(camera)

        await controller.start_verification()

        assert controller.status == VerificationStatus.ERROR
        assert controller.message == UNSUPPORTED_MESSAGE
        assert controller.token is None
        assert not controller.capture_active
        assert camera.acquire_calls == 0

    async def test_successful_acquisition_shows_live_preview(self, camera):
        controller = VerificationController(camera)

        await controller.start_verification()

        assert controller.status == VerificationStatus.CAPTURING
        assert controller.message == PROMPT_MESSAGE
        assert controller.capture_active
        assert controller.token is None
        assert camera.acquire_calls == 1

    @pytest.mark.parametrize(
        "error",
        [
            AcquisitionDenied("denied"),
            PermissionError("user refused"),
            OSError("device busy"),
        ],
    )
    async def test_acquisition_failure_reports_permission_message(self, error):
        controller = VerificationController(FakeCamera(error=error))

        await controller.start_verification()

        assert controller.status == VerificationStatus.ERROR
        assert controller.message == DENIED_MESSAGE
        assert not controller.capture_active

    async def test_capability_lost_during_acquire_reports_unsupported(self):
        controller = VerificationController(FakeCamera(error=CapabilityUnavailable("gone")))

        await controller.start_verification()

        assert controller.status == VerificationStatus.ERROR
        assert controller.message == UNSUPPORTED_MESSAGE

    async def test_error_is_not_retried_automatically(self):
        camera = FakeCamera(error=AcquisitionDenied("denied"))
        controller = VerificationController(camera)

        await controller.start_verification()
        assert camera.acquire_calls == 1

        camera.error = None
        await controller.start_verification()

        assert camera.acquire_calls == 2
        assert controller.status == VerificationStatus.CAPTURING

    async def test_restart_from_verified_invalidates_token(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()
        await controller.confirm_verification()

        await controller.start_verification()

        assert controller.status == VerificationStatus.CAPTURING
        assert controller.token is None

    async def test_restart_while_capturing_releases_previous_stream(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()
        first = camera.last_stream

        await controller.start_verification()

        assert first.stopped
        assert not camera.last_stream.stopped
        assert controller.capture_active


class TestConfirmVerification:
    async def test_confirm_without_preview_is_rejected(self, camera):
        controller = VerificationController(camera)

        with pytest.raises(InvalidTransition):
            await controller.confirm_verification()

        assert controller.status == VerificationStatus.IDLE
        assert controller.token is None

    async def test_confirm_after_error_is_rejected(self):
        controller = VerificationController(FakeCamera(available=False))
        await controller.start_verification()

        with pytest.raises(InvalidTransition):
            await controller.confirm_verification()
        assert controller.token is None

    async def test_confirm_mints_token_and_releases_camera(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()

        token = await controller.confirm_verification()

        assert token.startswith("valid-")
        assert controller.token == token
        assert controller.status == VerificationStatus.VERIFIED
        assert controller.message == VERIFIED_MESSAGE
        assert not controller.capture_active
        assert camera.last_stream.stopped

    async def test_tokens_differ_across_sessions(self, camera):
        controller = VerificationController(camera)

        await controller.start_verification()
        first = await controller.confirm_verification()
        await controller.cancel_verification()
        await controller.start_verification()
        second = await controller.confirm_verification()

        assert first != second

    async def test_confirm_twice_requires_new_preview(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()
        await controller.confirm_verification()

        with pytest.raises(InvalidTransition):
            await controller.confirm_verification()


async def _idle(controller):
    return None


async def _capturing(controller):
    await controller.start_verification()


async def _verified(controller):
    await controller.start_verification()
    await controller.confirm_verification()


async def _errored(controller):
    controller._camera.error = AcquisitionDenied("denied")
    await controller.start_verification()
    controller._camera.error = None


class TestCancelVerification:
    @pytest.mark.parametrize("setup", [_idle, _capturing, _verified, _errored])
    async def test_cancel_from_any_state_returns_to_idle(self, camera, setup):
        controller = VerificationController(camera)
        await setup(controller)

        await controller.cancel_verification()

        assert controller.status == VerificationStatus.IDLE
        assert controller.token is None
        assert controller.message == ""
        assert not controller.capture_active
        assert all(stream.stopped for stream in camera.streams)

    async def test_cancel_while_acquisition_pending_releases_late_stream(self):
        gate = asyncio.Event()
        camera = FakeCamera(gate=gate)
        controller = VerificationController(camera)

        pending = asyncio.create_task(controller.start_verification())
        await asyncio.sleep(0)
        assert controller.status == VerificationStatus.CAPTURING
        assert not controller.capture_active

        await controller.cancel_verification()
        gate.set()
        await pending

        assert controller.status == VerificationStatus.IDLE
        assert not controller.capture_active
        assert camera.last_stream.stopped

    async def test_failure_after_cancel_does_not_override_idle(self):
        gate = asyncio.Event()
        camera = FakeCamera(gate=gate, error=AcquisitionDenied("denied"))
        controller = VerificationController(camera)

        pending = asyncio.create_task(controller.start_verification())
        await asyncio.sleep(0)
        await controller.cancel_verification()
        gate.set()
        await pending

        assert controller.status == VerificationStatus.IDLE
        assert controller.message == ""


class TestTeardown:
    async def test_close_releases_held_camera(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()

        controller.close()

        assert camera.last_stream.stopped
        assert not controller.capture_active
        assert controller.token is None

    async def test_close_during_pending_acquisition(self):
        gate = asyncio.Event()
        camera = FakeCamera(gate=gate)
        controller = VerificationController(camera)

        pending = asyncio.create_task(controller.start_verification())
        await asyncio.sleep(0)
        controller.close()
        gate.set()
        await pending

        assert camera.last_stream.stopped
        assert not controller.capture_active

    async def test_start_after_close_is_rejected(self, camera):
        controller = VerificationController(camera)
        controller.close()

        with pytest.raises(InvalidTransition):
            await controller.start_verification()
        assert camera.acquire_calls == 0


class TestPreviewAndCallbacks:
    async def test_preview_yields_frames_from_held_stream(self, camera):
        controller = VerificationController(camera)
        await controller.start_verification()

        frames = [frame async for frame in controller.preview_frames()]

        assert frames == [b"jpeg-1", b"jpeg-2"]

    async def test_preview_is_empty_without_capture(self, camera):
        controller = VerificationController(camera)

        frames = [frame async for frame in controller.preview_frames()]

        assert frames == []

    async def test_every_transition_notifies_callbacks(self, camera):
        controller = VerificationController(camera)
        seen = []

        async def record():
            seen.append(controller.status)

        controller.register_callback(record)
        await controller.start_verification()
        await controller.confirm_verification()
        await controller.cancel_verification()

        # capturing (pending), capturing (preview live), verified, idle
        assert seen == [
            VerificationStatus.CAPTURING,
            VerificationStatus.CAPTURING,
            VerificationStatus.VERIFIED,
            VerificationStatus.IDLE,
        ]

    async def test_failing_callback_does_not_break_transition(self, camera):
        controller = VerificationController(camera)

        async def boom():
            raise RuntimeError("ui gone")

        controller.register_callback(boom)
        await controller.start_verification()

        assert controller.capture_active
