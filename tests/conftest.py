"""
Pytest configuration and fixtures for facepay tests.
"""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, List, Optional

import httpx
import pytest

from facepay.backend.http_client import PaymentsHttpClient
from facepay.config import Settings

BASE_URL = "http://payments.test/api"


class FakeStream:
    """Media handle double that records whether it was released."""

    def __init__(self, frames: Optional[List[bytes]] = None) -> None:
        self.stop_calls = 0
        self._frames = frames if frames is not None else [b"jpeg-1", b"jpeg-2"]

    @property
    def active(self) -> bool:
        return self.stop_calls == 0

    @property
    def stopped(self) -> bool:
        return self.stop_calls > 0

    def stop(self) -> None:
        self.stop_calls += 1

    async def frames(self):
        for frame in self._frames:
            if not self.active:
                return
            yield frame


class FakeCamera:
    """Camera capability double; ``gate`` holds acquisition pending until set."""

    def __init__(
        self,
        *,
        available: bool = True,
        error: Optional[BaseException] = None,
        gate: Optional[asyncio.Event] = None,
    ) -> None:
        self._available = available
        self.error = error
        self.gate = gate
        self.acquire_calls = 0
        self.streams: List[FakeStream] = []

    @property
    def available(self) -> bool:
        return self._available

    async def acquire(self) -> FakeStream:
        self.acquire_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        stream = FakeStream()
        self.streams.append(stream)
        return stream

    @property
    def last_stream(self) -> Optional[FakeStream]:
        return self.streams[-1] if self.streams else None


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        payments_api_url=BASE_URL,
        payment_user_id="demo-user",
        log_directory=tmp_path / "logs",
    )


@pytest.fixture
def camera() -> FakeCamera:
    return FakeCamera()


def json_response(status_code: int, body: Any) -> httpx.Response:
    return httpx.Response(status_code, json=body)


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a response."""

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self._responder = responder
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def bodies(self) -> List[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def make_client(settings):
    """Build a PaymentsHttpClient whose transport answers with ``responder``."""

    def _make(responder: Callable[[httpx.Request], httpx.Response]):
        handler = RecordingHandler(responder)
        client = PaymentsHttpClient(settings, transport=httpx.MockTransport(handler))
        return client, handler

    return _make
