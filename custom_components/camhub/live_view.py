"""Live view lifecycle: one WHEP session per camera view."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum
import logging

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback

from .models import Camera, LiveSession
from .sink import VideoSink
from .whep import NegotiationError, async_close_peer, build_whep_url

_LOGGER = logging.getLogger(__name__)

NegotiateCallable = Callable[[str], Awaitable[LiveSession]]
EndSessionCallable = Callable[[str], Awaitable[None]]


class ViewState(StrEnum):
    """State of a live view controller."""

    IDLE = "idle"
    CONNECTING = "connecting"
    LIVE = "live"
    ERROR = "error"
    TORN_DOWN = "torn_down"


class BindToken:
    """Cancellation token for one bind cycle."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class LiveViewController:
    """Drive one camera binding through negotiation and teardown.

    A controller is never re-bound: a different camera, stream path or
    gateway base means a new controller. Work resumed after a suspension is
    dropped once the bind token has been cancelled by ``unbind``.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        sink: VideoSink,
        camera: Camera,
        webrtc_base: str | None,
        negotiate: NegotiateCallable,
        end_session: EndSessionCallable,
    ) -> None:
        self.hass = hass
        self._sink = sink
        self._camera = camera
        self._webrtc_base = webrtc_base or None
        self._negotiate = negotiate
        self._end_session = end_session
        self._token = BindToken()
        self._state = ViewState.IDLE
        self._error: str | None = None
        self._session: LiveSession | None = None
        self._listeners: list[CALLBACK_TYPE] = []

    @property
    def camera(self) -> Camera:
        return self._camera

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def session(self) -> LiveSession | None:
        return self._session

    @property
    def endpoint_url(self) -> str | None:
        if not self._webrtc_base:
            return None
        return build_whep_url(self._webrtc_base, self._camera.stream_key)

    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        """Listen for state changes; returns a function that unsubscribes."""
        self._listeners.append(update_callback)

        @callback
        def _remove() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return _remove

    async def async_bind(self) -> None:
        """Negotiate a session and attach its first stream to the sink."""
        endpoint_url = self.endpoint_url
        if self._state is not ViewState.IDLE or endpoint_url is None:
            return

        token = self._token
        self._error = None
        self._set_state(ViewState.CONNECTING)
        try:
            session = await self._negotiate(endpoint_url)
        except NegotiationError as err:
            if err.peer_connection is not None:
                self._schedule_close(err.peer_connection)
            if token.cancelled:
                return
            _LOGGER.warning("Live view for camera %s failed: %s", self._camera.id, err)
            self._error = "WebRTC failed"
            self._set_state(ViewState.ERROR)
            return

        if token.cancelled:
            _LOGGER.debug("Discarding late session for camera %s", self._camera.id)
            self._dispose(session)
            return

        self._session = session
        self._set_state(ViewState.LIVE)

        try:
            stream = await session.first_media
        except asyncio.CancelledError:
            if token.cancelled:
                return
            raise
        if token.cancelled:
            return
        self._sink.attach(stream)

    @callback
    def unbind(self) -> None:
        """Tear down the binding; never raises and is safe to call twice."""
        if self._state is ViewState.TORN_DOWN:
            return
        self._token.cancel()
        session, self._session = self._session, None
        self._set_state(ViewState.TORN_DOWN)
        if session is not None:
            self._dispose(session)

    def _dispose(self, session: LiveSession) -> None:
        if not session.first_media.done():
            session.first_media.cancel()
        self._schedule_close(session.peer_connection)
        if session.session_url:
            self.hass.async_create_task(
                self._end_session(session.session_url),
                f"camhub end session {self._camera.id}",
            )

    def _schedule_close(self, peer_connection) -> None:
        # Eager start lets close() mark the connection closed before we return.
        self.hass.async_create_task(
            async_close_peer(peer_connection),
            f"camhub close peer {self._camera.id}",
            eager_start=True,
        )

    def _set_state(self, state: ViewState) -> None:
        if state is self._state:
            return
        self._state = state
        for update_callback in list(self._listeners):
            update_callback()


class LiveView:
    """Per-camera view holding the sink and the current controller."""

    def __init__(
        self,
        hass: HomeAssistant,
        sink: VideoSink,
        negotiate: NegotiateCallable,
        end_session: EndSessionCallable,
    ) -> None:
        self.hass = hass
        self.sink = sink
        self._negotiate = negotiate
        self._end_session = end_session
        self._controller: LiveViewController | None = None
        self._binding_key: tuple[str, str, str | None] | None = None
        self._unsub_controller: CALLBACK_TYPE | None = None
        self._listeners: list[CALLBACK_TYPE] = []

    @property
    def controller(self) -> LiveViewController | None:
        return self._controller

    @property
    def state(self) -> ViewState:
        if self._controller is None:
            return ViewState.IDLE
        return self._controller.state

    @property
    def error(self) -> str | None:
        return self._controller.error if self._controller else None

    @property
    def session(self) -> LiveSession | None:
        return self._controller.session if self._controller else None

    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        self._listeners.append(update_callback)

        @callback
        def _remove() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return _remove

    @callback
    def async_set_binding(self, camera: Camera, webrtc_base: str | None) -> LiveViewController:
        """Bind to a camera, rebinding only when the binding key changed."""
        key = (camera.id, camera.stream_key, webrtc_base or None)
        if self._controller is not None and key == self._binding_key:
            return self._controller

        self.unbind()
        controller = LiveViewController(
            self.hass,
            self.sink,
            camera,
            webrtc_base,
            self._negotiate,
            self._end_session,
        )
        self._controller = controller
        self._binding_key = key
        self._unsub_controller = controller.async_add_listener(self._notify)
        self.hass.async_create_background_task(
            controller.async_bind(), f"camhub bind {camera.id}"
        )
        self._notify()
        return controller

    @callback
    def unbind(self) -> None:
        if self._controller is None:
            return
        self._binding_key = None
        self._controller.unbind()
        if self._unsub_controller is not None:
            self._unsub_controller()
            self._unsub_controller = None

    @callback
    def _notify(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()
