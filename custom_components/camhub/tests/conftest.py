"""Pytest configuration and shared fakes for CamHub tests."""

from __future__ import annotations

import asyncio
import warnings
from typing import Any

import pytest
from aiortc import RTCSessionDescription

from custom_components.camhub.models import LiveSession, LiveStream


warnings.filterwarnings(
    "ignore",
    message="Inheritance class HomeAssistantApplication from web.Application is discouraged",
    category=DeprecationWarning,
    module=r"homeassistant\.components\.http\.__init__",
)


class FakeHass:
    """Minimal hass stub: tasks on the running loop, eager like Home Assistant."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.tasks: list[asyncio.Task] = []
        self.executor_calls = 0

    def async_create_task(self, target, name=None, eager_start=True):
        loop = asyncio.get_running_loop()
        if eager_start:
            task = asyncio.eager_task_factory(loop, target, name=name)
        else:
            task = loop.create_task(target, name=name)
        self.tasks.append(task)
        return task

    def async_create_background_task(self, target, name, eager_start=True):
        return self.async_create_task(target, name, eager_start)

    async def async_add_executor_job(self, func, *args):
        self.executor_calls += 1
        return func(*args)


class FakeTrack:
    def __init__(self, kind: str) -> None:
        self.kind = kind


class FakePeerConnection:
    """Stands in for aiortc's RTCPeerConnection."""

    def __init__(self, *, fail_remote: bool = False, fail_close: bool = False) -> None:
        self.handlers: dict[str, Any] = {}
        self.transceivers: list[tuple[str, str]] = []
        self.localDescription: RTCSessionDescription | None = None
        self.remoteDescription: RTCSessionDescription | None = None
        self.closed = False
        self._fail_remote = fail_remote
        self._fail_close = fail_close

    def on(self, event: str):
        def _decorator(func):
            self.handlers[event] = func
            return func

        return _decorator

    def addTransceiver(self, kind: str, direction: str) -> None:
        self.transceivers.append((kind, direction))

    async def createOffer(self) -> RTCSessionDescription:
        return RTCSessionDescription(sdp="v=0\r\no=- offer\r\n", type="offer")

    async def setLocalDescription(self, description: RTCSessionDescription) -> None:
        self.localDescription = description

    async def setRemoteDescription(self, description: RTCSessionDescription) -> None:
        if self._fail_remote:
            raise ValueError("malformed answer")
        self.remoteDescription = description

    async def close(self) -> None:
        self.closed = True
        if self._fail_close:
            raise RuntimeError("close failed")

    def emit_track(self, track: FakeTrack) -> None:
        self.handlers["track"](track)


class FakeResponse:
    def __init__(self, status: int = 200, body: Any = "", headers: dict[str, str] | None = None) -> None:
        self.status = status
        self._body = body
        self.headers = headers or {}

    async def text(self) -> str:
        return str(self._body)

    async def json(self, content_type=None) -> Any:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    async def __aenter__(self) -> "FakeResponse":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


class FakeClientSession:
    """Records requests and replays queued responses or errors."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.responses: dict[tuple[str, str], Any] = {}

    def queue(self, method: str, url: str, result: Any) -> None:
        self.responses[(method, url)] = result

    def request(self, method: str, url: str, **kwargs) -> FakeResponse:
        self.requests.append({"method": method, "url": url, **kwargs})
        result = self.responses.get((method, url), FakeResponse(404))
        if isinstance(result, Exception):
            raise result
        return result

    def post(self, url: str, **kwargs) -> FakeResponse:
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs) -> FakeResponse:
        return self.request("DELETE", url, **kwargs)


class FakeSink:
    """Records every attach so tests can count sink mutations."""

    def __init__(self) -> None:
        self.attached: list[LiveStream] = []

    def attach(self, stream: LiveStream) -> bool:
        self.attached.append(stream)
        return True


def make_session(session_url: str | None = None, *, media: bool = True) -> LiveSession:
    loop = asyncio.get_running_loop()
    stream = LiveStream()
    first_media = loop.create_future()
    if media:
        stream.add_track(FakeTrack("video"))
        first_media.set_result(stream)
    return LiveSession(
        peer_connection=FakePeerConnection(),
        session_url=session_url,
        stream=stream,
        first_media=first_media,
    )


async def settle(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def hass() -> FakeHass:
    return FakeHass()
