"""Reconciliation of backend camera and motion state with local view state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Any
from urllib.parse import urlsplit

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_call_later, async_track_time_interval
from homeassistant.helpers.network import NoURLAvailableError, get_url
from homeassistant.util import dt as dt_util

from .api import CamHubApiClient
from .const import (
    DEFAULT_CAMERA_SCAN_INTERVAL,
    DEFAULT_MOTION_LIMIT,
    DEFAULT_MOTION_SCAN_INTERVAL,
    FALLBACK_WEBRTC_PORT,
    SAVE_DELAY_SECONDS,
)
from .live_view import LiveView
from .models import Camera, CamHubApiError, MotionEvent, SnapshotRecord
from .sink import VideoSink
from .storage import SnapshotStore
from .whep import async_end_session, async_negotiate

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DashboardConfig:
    """Settings resolved from the config entry."""

    webrtc_base_override: str | None = None
    camera_scan_interval: int = DEFAULT_CAMERA_SCAN_INTERVAL
    motion_scan_interval: int = DEFAULT_MOTION_SCAN_INTERVAL
    motion_limit: int = DEFAULT_MOTION_LIMIT


class CamHubDashboard:
    """Keep cached cameras, motion events and snapshot history in sync."""

    def __init__(
        self,
        hass: HomeAssistant,
        client: CamHubApiClient,
        config: DashboardConfig | None = None,
        store: SnapshotStore | None = None,
    ) -> None:
        self.hass = hass
        self._client = client
        self._config = config or DashboardConfig()
        self._store = store or SnapshotStore(hass)
        self._cameras: tuple[Camera, ...] = ()
        self._motion_events: tuple[MotionEvent, ...] = ()
        self._snapshots: list[SnapshotRecord] = []
        self._webrtc_base: str | None = None
        self._views: dict[str, LiveView] = {}
        self._listeners: list[CALLBACK_TYPE] = []
        self._unsub_camera_timer: CALLBACK_TYPE | None = None
        self._unsub_motion_timer: CALLBACK_TYPE | None = None
        self._unsub_delayed_save: CALLBACK_TYPE | None = None
        self._camera_refresh_lock = asyncio.Lock()
        self._motion_refresh_lock = asyncio.Lock()

    async def async_start(self) -> None:
        """Load history, resolve the gateway and start both poll cycles."""
        self._snapshots = await self._store.async_load()
        await self.async_resolve_webrtc_base()
        await self.async_refresh_cameras()
        await self.async_refresh_motion()
        self._unsub_camera_timer = async_track_time_interval(
            self.hass,
            self._async_camera_tick,
            timedelta(seconds=self._config.camera_scan_interval),
            name="camhub camera refresh",
        )
        self._unsub_motion_timer = async_track_time_interval(
            self.hass,
            self._async_motion_tick,
            timedelta(seconds=self._config.motion_scan_interval),
            name="camhub motion refresh",
        )
        _LOGGER.info(
            "CamHub dashboard started with %s cameras (gateway %s)",
            len(self._cameras),
            self._webrtc_base or "unresolved",
        )

    async def async_stop(self) -> None:
        """Cancel timers, tear down every view and flush history."""
        for attr in ("_unsub_camera_timer", "_unsub_motion_timer", "_unsub_delayed_save"):
            unsub = getattr(self, attr)
            if unsub is not None:
                unsub()
                setattr(self, attr, None)
        for camera_id in list(self._views):
            self.async_release_view(camera_id)
        await self._async_save_snapshots()

    def get_cameras(self) -> tuple[Camera, ...]:
        return self._cameras

    def get_camera(self, camera_id: str) -> Camera | None:
        return next((camera for camera in self._cameras if camera.id == camera_id), None)

    def get_motion_events(self) -> tuple[MotionEvent, ...]:
        return self._motion_events

    def get_snapshots(self) -> list[SnapshotRecord]:
        """Return newest-first snapshot history."""
        return list(self._snapshots)

    def get_webrtc_base(self) -> str | None:
        return self._webrtc_base

    @callback
    def async_add_listener(self, update_callback: CALLBACK_TYPE) -> CALLBACK_TYPE:
        """Listen for collection updates; returns a function that unsubscribes."""
        self._listeners.append(update_callback)

        @callback
        def _remove() -> None:
            if update_callback in self._listeners:
                self._listeners.remove(update_callback)

        return _remove

    async def async_resolve_webrtc_base(self) -> str | None:
        """Resolve the media gateway address once."""
        if self._webrtc_base:
            return self._webrtc_base
        base = self._config.webrtc_base_override
        if not base:
            try:
                config = await self._client.async_get_config()
            except CamHubApiError as err:
                _LOGGER.warning("Could not fetch CamHub config, live views stay idle: %s", err)
                return None
            base = config.get("webrtcBase") or fallback_webrtc_base(
                self._client.api_base, self._hass_url()
            )
        self._webrtc_base = str(base).rstrip("/")
        _LOGGER.debug("CamHub media gateway resolved to %s", self._webrtc_base)
        self._reconcile_views()
        return self._webrtc_base

    async def async_refresh_cameras(self) -> bool:
        """Replace the camera list; keep the previous one on failure."""
        async with self._camera_refresh_lock:
            if self._webrtc_base is None:
                await self.async_resolve_webrtc_base()
            try:
                cameras = await self._client.async_list_cameras()
            except CamHubApiError as err:
                _LOGGER.debug(
                    "Camera refresh failed, keeping %s cached cameras: %s", len(self._cameras), err
                )
                return False
            self._cameras = cameras
        self._reconcile_views()
        self._notify()
        return True

    async def async_refresh_motion(self) -> bool:
        """Replace the motion event list; keep the previous one on failure."""
        async with self._motion_refresh_lock:
            try:
                events = await self._client.async_list_motion(self._config.motion_limit)
            except CamHubApiError as err:
                _LOGGER.debug("Motion refresh failed: %s", err)
                return False
            self._motion_events = events
        self._notify()
        return True

    async def async_take_snapshot(self, camera_id: str) -> SnapshotRecord | None:
        """Ask the backend for a snapshot and record it at the front of history."""
        data = await self._client.async_take_snapshot(camera_id)
        path = data.get("path")
        if not data.get("ok") or not path:
            _LOGGER.debug("Snapshot for camera %s not taken: %s", camera_id, data)
            return None
        record = SnapshotRecord(
            camera_id=camera_id,
            ts=int(dt_util.utcnow().timestamp() * 1000),
            url=self._client.resolve_asset_url(str(path)),
        )
        self._snapshots = [record, *self._snapshots]
        self._schedule_save()
        self._notify()
        return record

    async def async_enable_camera(self, camera_id: str) -> bool:
        return await self._async_camera_command(self._client.async_enable_camera, camera_id)

    async def async_disable_camera(self, camera_id: str) -> bool:
        return await self._async_camera_command(self._client.async_disable_camera, camera_id)

    async def async_remove_camera(self, camera_id: str) -> bool:
        return await self._async_camera_command(self._client.async_delete_camera, camera_id)

    async def _async_camera_command(self, command, camera_id: str) -> bool:
        data = await command(camera_id)
        if not data.get("ok"):
            return False
        await self.async_refresh_cameras()
        return True

    @callback
    def async_get_view(self, camera_id: str) -> LiveView:
        """Return the live view for a camera, creating and binding it if needed."""
        view = self._views.get(camera_id)
        if view is None:
            view = LiveView(
                self.hass,
                VideoSink(self.hass, camera_id),
                self._async_negotiate,
                self._async_end_session,
            )
            self._views[camera_id] = view
        camera = self.get_camera(camera_id)
        if camera is not None:
            view.async_set_binding(camera, self._webrtc_base)
        return view

    @callback
    def async_release_view(self, camera_id: str) -> None:
        """Tear down and forget the live view of a camera."""
        view = self._views.pop(camera_id, None)
        if view is None:
            return
        view.unbind()
        view.sink.release()

    def as_dict(self) -> dict[str, Any]:
        """JSON-ready state for websocket consumers."""
        views = {camera_id: view.state.value for camera_id, view in self._views.items()}
        return {
            "webrtc_base": self._webrtc_base,
            "cameras": [
                {**camera.as_dict(), "view_state": views.get(camera.id)}
                for camera in self._cameras
            ],
            "motion_events": [
                {
                    **event.as_dict(),
                    "snapshot_url": self._client.resolve_asset_url(event.snapshot_path)
                    if event.snapshot_path
                    else None,
                }
                for event in self._motion_events
            ],
            "snapshots": [record.as_dict() for record in self._snapshots],
        }

    def _reconcile_views(self) -> None:
        current = {camera.id: camera for camera in self._cameras}
        for camera_id in list(self._views):
            camera = current.get(camera_id)
            if camera is None:
                self.async_release_view(camera_id)
                continue
            self._views[camera_id].async_set_binding(camera, self._webrtc_base)

    def _async_negotiate(self, endpoint_url: str):
        return async_negotiate(
            self._client.session, endpoint_url, headers=self._client.auth_headers()
        )

    def _async_end_session(self, session_url: str):
        return async_end_session(
            self._client.session, session_url, headers=self._client.auth_headers()
        )

    async def _async_camera_tick(self, _now: datetime) -> None:
        if self._camera_refresh_lock.locked():
            _LOGGER.debug("Camera refresh still running, skipping this cycle")
            return
        await self.async_refresh_cameras()

    async def _async_motion_tick(self, _now: datetime) -> None:
        if self._motion_refresh_lock.locked():
            _LOGGER.debug("Motion refresh still running, skipping this cycle")
            return
        await self.async_refresh_motion()

    def _schedule_save(self) -> None:
        if self._unsub_delayed_save is not None:
            self._unsub_delayed_save()
            self._unsub_delayed_save = None

        @callback
        def _save_callback(_now: datetime) -> None:
            self._unsub_delayed_save = None
            self.hass.async_create_task(self._async_save_snapshots())

        self._unsub_delayed_save = async_call_later(self.hass, SAVE_DELAY_SECONDS, _save_callback)

    async def _async_save_snapshots(self) -> None:
        try:
            await self._store.async_save(self._snapshots)
        except Exception as err:  # noqa: BLE001
            _LOGGER.debug("Failed to persist snapshot history: %s", err)

    def _hass_url(self) -> str | None:
        try:
            return get_url(self.hass, require_ssl=False)
        except NoURLAvailableError:
            return None

    @callback
    def _notify(self) -> None:
        for update_callback in list(self._listeners):
            update_callback()


def fallback_webrtc_base(api_base: str | None, hass_url: str | None = None) -> str:
    """Derive the gateway address from the API host and the well-known port."""
    for candidate in (api_base, hass_url):
        if not candidate:
            continue
        parts = urlsplit(candidate)
        if parts.scheme and parts.hostname:
            host = f"[{parts.hostname}]" if ":" in parts.hostname else parts.hostname
            return f"{parts.scheme}://{host}:{FALLBACK_WEBRTC_PORT}"
    return f"http://127.0.0.1:{FALLBACK_WEBRTC_PORT}"
