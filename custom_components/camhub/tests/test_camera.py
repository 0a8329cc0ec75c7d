"""Unit tests for the camera platform."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
from homeassistant.components.camera import Camera as CameraEntity

from custom_components.camhub import camera as camera_module
from custom_components.camhub.camera import CamHubCameraEntity
from custom_components.camhub.live_view import ViewState
from custom_components.camhub.models import Camera

from conftest import FakeHass

CAM1 = Camera(id="cam1", name="Front", status="online", stream_path="front")
CAM2 = Camera(id="cam2", name="Back", status="offline")


class _FakeView:
    def __init__(self) -> None:
        self.state = ViewState.IDLE
        self.error = None
        self.listeners: list = []

    def async_add_listener(self, update_callback):
        self.listeners.append(update_callback)
        return lambda: self.listeners.remove(update_callback)


class _FakeDashboard:
    """Camera list plus view bookkeeping."""

    def __init__(self, cameras: tuple[Camera, ...]) -> None:
        self.cameras = cameras
        self.listeners: list = []
        self.views: dict[str, _FakeView] = {}
        self.released: list[str] = []

    def get_cameras(self) -> tuple[Camera, ...]:
        return self.cameras

    def get_camera(self, camera_id: str) -> Camera | None:
        return next((camera for camera in self.cameras if camera.id == camera_id), None)

    def async_add_listener(self, update_callback):
        self.listeners.append(update_callback)
        return lambda: self.listeners.remove(update_callback)

    def async_get_view(self, camera_id: str) -> _FakeView:
        return self.views.setdefault(camera_id, _FakeView())

    def async_release_view(self, camera_id: str) -> None:
        self.views.pop(camera_id, None)
        self.released.append(camera_id)

    def notify(self) -> None:
        for update_callback in list(self.listeners):
            update_callback()


class _FakeEntry:
    def __init__(self, dashboard: _FakeDashboard) -> None:
        self.runtime_data = SimpleNamespace(dashboard=dashboard)
        self.unloads: list = []

    def async_on_unload(self, func) -> None:
        self.unloads.append(func)


@pytest.fixture
def writes(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    """Skip Home Assistant's entity plumbing and record state writes."""
    recorded: list[str] = []

    async def _noop(self) -> None:
        return None

    monkeypatch.setattr(CameraEntity, "async_added_to_hass", _noop)
    monkeypatch.setattr(CameraEntity, "async_will_remove_from_hass", _noop)
    monkeypatch.setattr(
        CamHubCameraEntity, "async_write_ha_state", lambda self: recorded.append(self.camera_id)
    )
    return recorded


def test_setup_adds_entities_for_new_camera_ids_only() -> None:
    dashboard = _FakeDashboard((CAM1,))
    entry = _FakeEntry(dashboard)
    added: list[list[CamHubCameraEntity]] = []

    async def _run():
        await camera_module.async_setup_entry(FakeHass(), entry, added.append)
        dashboard.notify()
        dashboard.cameras = (CAM1, CAM2)
        dashboard.notify()

    asyncio.run(_run())

    assert [[entity.camera_id for entity in batch] for batch in added] == [["cam1"], ["cam2"]]
    assert len(entry.unloads) == 1


def test_setup_readds_camera_that_came_back() -> None:
    dashboard = _FakeDashboard((CAM1,))
    added: list[list[CamHubCameraEntity]] = []

    async def _run():
        await camera_module.async_setup_entry(FakeHass(), _FakeEntry(dashboard), added.append)
        dashboard.cameras = ()
        dashboard.notify()
        dashboard.cameras = (CAM1,)
        dashboard.notify()

    asyncio.run(_run())

    assert [[entity.camera_id for entity in batch] for batch in added] == [["cam1"], ["cam1"]]


def test_entity_mount_and_unmount_drive_the_view(writes: list[str]) -> None:
    dashboard = _FakeDashboard((CAM1,))
    entity = CamHubCameraEntity(dashboard, CAM1)

    async def _run():
        await entity.async_added_to_hass()
        mounted_view = entity._view
        mounted_view.state = ViewState.LIVE
        mounted_view.listeners[0]()
        streaming = entity.is_streaming
        await entity.async_will_remove_from_hass()
        return mounted_view, streaming

    mounted_view, streaming = asyncio.run(_run())

    assert mounted_view is not None
    assert streaming is True
    assert writes == ["cam1"]
    assert dashboard.released == ["cam1"]
    assert entity._view is None
    assert entity.is_streaming is False


def test_entity_follows_camera_updates(writes: list[str]) -> None:
    dashboard = _FakeDashboard((CAM1,))
    entity = CamHubCameraEntity(dashboard, CAM1)

    async def _run():
        await entity.async_added_to_hass()
        dashboard.cameras = (Camera(id="cam1", name="Front", status="offline"),)
        dashboard.notify()

    asyncio.run(_run())

    assert writes == ["cam1"]
    assert entity.is_on is False
    assert entity.extra_state_attributes["status"] == "offline"


def test_entity_removes_itself_when_camera_vanishes(writes: list[str]) -> None:
    dashboard = _FakeDashboard((CAM1,))
    entity = CamHubCameraEntity(dashboard, CAM1)
    removed: list[str] = []

    async def _remove() -> None:
        removed.append(entity.camera_id)

    entity.async_remove = _remove

    async def _run():
        entity.hass = FakeHass()
        await entity.async_added_to_hass()
        dashboard.cameras = ()
        dashboard.notify()
        await asyncio.sleep(0)

    asyncio.run(_run())

    assert removed == ["cam1"]
    assert writes == []


def test_attributes_tolerate_unreadable_timestamps() -> None:
    camera = Camera(id="cam1", name="Front", last_seen="99999999999999999999", last_motion_at="soon")
    entity = CamHubCameraEntity(_FakeDashboard((camera,)), camera)

    attributes = entity.extra_state_attributes

    assert attributes["last_seen"] is None
    assert attributes["last_motion_at"] is None
    assert attributes["view_state"] == "idle"
    assert attributes["stream_path"] == "cam1"
