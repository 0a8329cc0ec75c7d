"""Camera entities rendering CamHub live views."""

from __future__ import annotations

from typing import Any

from homeassistant.components.camera import Camera as CameraEntity
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from . import CamHubConfigEntry
from .const import CAMERA_STATUS_ONLINE, DOMAIN
from .dashboard import CamHubDashboard
from .live_view import LiveView, ViewState
from .models import Camera


async def async_setup_entry(
    hass: HomeAssistant, entry: CamHubConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    """Add one camera entity per backend camera, following the camera list."""
    dashboard = entry.runtime_data.dashboard
    known_ids: set[str] = set()

    @callback
    def _async_add_new_cameras() -> None:
        cameras = dashboard.get_cameras()
        known_ids.intersection_update(camera.id for camera in cameras)
        new_entities = [
            CamHubCameraEntity(dashboard, camera)
            for camera in cameras
            if camera.id not in known_ids
        ]
        if not new_entities:
            return
        known_ids.update(entity.camera_id for entity in new_entities)
        async_add_entities(new_entities)

    _async_add_new_cameras()
    entry.async_on_unload(dashboard.async_add_listener(_async_add_new_cameras))


class CamHubCameraEntity(CameraEntity):
    """Live view of one CamHub camera."""

    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = False

    def __init__(self, dashboard: CamHubDashboard, camera: Camera) -> None:
        super().__init__()
        self._dashboard = dashboard
        self._camera = camera
        self._view: LiveView | None = None
        self._attr_unique_id = f"{DOMAIN}_{camera.id}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, camera.id)},
            name=camera.name,
            manufacturer="CamHub",
        )

    @property
    def camera_id(self) -> str:
        return self._camera.id

    @property
    def is_streaming(self) -> bool:
        return self._view is not None and self._view.state is ViewState.LIVE

    @property
    def is_on(self) -> bool:
        return self._camera.status == CAMERA_STATUS_ONLINE

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        view = self._view
        return {
            "camera_id": self._camera.id,
            "status": self._camera.status,
            "stream_path": self._camera.stream_key,
            "last_seen": self._camera.last_seen_dt,
            "last_motion_at": self._camera.last_motion_dt,
            "view_state": view.state.value if view else ViewState.IDLE.value,
            "view_error": view.error if view else None,
        }

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self._view = self._dashboard.async_get_view(self._camera.id)
        self.async_on_remove(self._view.async_add_listener(self.async_write_ha_state))
        self.async_on_remove(self._dashboard.async_add_listener(self._handle_dashboard_update))

    async def async_will_remove_from_hass(self) -> None:
        self._dashboard.async_release_view(self._camera.id)
        self._view = None
        await super().async_will_remove_from_hass()

    async def async_camera_image(
        self, width: int | None = None, height: int | None = None
    ) -> bytes | None:
        if self._view is None:
            return None
        return await self._view.sink.async_image()

    @callback
    def _handle_dashboard_update(self) -> None:
        camera = self._dashboard.get_camera(self._camera.id)
        if camera is None:
            self.hass.async_create_task(self.async_remove())
            return
        self._camera = camera
        self.async_write_ha_state()
