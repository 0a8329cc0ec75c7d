"""CamHub dashboard integration."""

from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Callable
from functools import partial
from typing import Any

import voluptuous as vol

from homeassistant.components import websocket_api
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall, callback
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import CamHubApiClient
from .const import (
    ATTR_CAMERA_ID,
    CONF_API_BASE,
    CONF_CAMERA_SCAN_INTERVAL,
    CONF_MOTION_LIMIT,
    CONF_MOTION_SCAN_INTERVAL,
    CONF_TOKEN,
    CONF_WEBRTC_BASE,
    DEFAULT_CAMERA_SCAN_INTERVAL,
    DEFAULT_MOTION_LIMIT,
    DEFAULT_MOTION_SCAN_INTERVAL,
    DOMAIN,
    MAX_CAMERA_SCAN_INTERVAL,
    MAX_MOTION_LIMIT,
    MAX_MOTION_SCAN_INTERVAL,
    MIN_CAMERA_SCAN_INTERVAL,
    MIN_MOTION_LIMIT,
    MIN_MOTION_SCAN_INTERVAL,
    SERVICE_DISABLE_CAMERA,
    SERVICE_ENABLE_CAMERA,
    SERVICE_REMOVE_CAMERA,
    SERVICE_TAKE_SNAPSHOT,
)
from .dashboard import CamHubDashboard, DashboardConfig
from .models import CamHubApiError
from .storage import SnapshotStore

PLATFORMS: list[Platform] = [Platform.CAMERA]
_SERVICE_SCHEMA = vol.Schema({vol.Required(ATTR_CAMERA_ID): cv.string})


@dataclass(slots=True)
class CamHubData:
    """Runtime data stored on the config entry."""

    dashboard: CamHubDashboard
    options_unsub: Callable[[], None] | None = None


CamHubConfigEntry = ConfigEntry[CamHubData]


async def async_setup(hass: HomeAssistant, config: dict) -> bool:
    """Set up integration from YAML (none)."""
    return True


async def async_setup_entry(hass: HomeAssistant, entry: CamHubConfigEntry) -> bool:
    """Set up CamHub from a config entry."""
    client = CamHubApiClient(
        async_get_clientsession(hass),
        entry.data.get(CONF_API_BASE, ""),
        entry.data.get(CONF_TOKEN),
    )
    dashboard = CamHubDashboard(
        hass, client, _dashboard_config_from_entry(entry), SnapshotStore(hass)
    )
    await dashboard.async_start()
    options_unsub = entry.add_update_listener(_async_reload_entry_on_update)
    entry.runtime_data = CamHubData(dashboard=dashboard, options_unsub=options_unsub)
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _async_register_ws_commands(hass)
    _async_register_services(hass)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: CamHubConfigEntry) -> bool:
    """Unload the config entry."""
    unloaded = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unloaded:
        return False
    if entry.runtime_data.options_unsub:
        entry.runtime_data.options_unsub()
    await entry.runtime_data.dashboard.async_stop()
    for service in _SERVICES:
        hass.services.async_remove(DOMAIN, service)
    return True


async def _async_reload_entry_on_update(hass: HomeAssistant, entry: CamHubConfigEntry) -> None:
    """Reload config entry when options change."""
    await hass.config_entries.async_reload(entry.entry_id)


def _dashboard_for_call(hass: HomeAssistant) -> CamHubDashboard | None:
    entries = hass.config_entries.async_entries(DOMAIN)
    if not entries:
        return None
    runtime_data = getattr(entries[0], "runtime_data", None)
    return getattr(runtime_data, "dashboard", None)


@callback
def _async_register_ws_commands(hass: HomeAssistant) -> None:
    if hass.data.get(f"{DOMAIN}_ws_registered"):
        return
    websocket_api.async_register_command(hass, ws_state)
    websocket_api.async_register_command(hass, ws_take_snapshot)
    hass.data[f"{DOMAIN}_ws_registered"] = True


async def _async_handle_take_snapshot(hass: HomeAssistant, call: ServiceCall) -> None:
    dashboard = _require_dashboard(hass)
    try:
        await dashboard.async_take_snapshot(call.data[ATTR_CAMERA_ID])
    except CamHubApiError as err:
        raise HomeAssistantError(f"Snapshot failed: {err}") from err


async def _async_handle_enable_camera(hass: HomeAssistant, call: ServiceCall) -> None:
    await _async_run_camera_command(hass, "async_enable_camera", call.data[ATTR_CAMERA_ID])


async def _async_handle_disable_camera(hass: HomeAssistant, call: ServiceCall) -> None:
    await _async_run_camera_command(hass, "async_disable_camera", call.data[ATTR_CAMERA_ID])


async def _async_handle_remove_camera(hass: HomeAssistant, call: ServiceCall) -> None:
    await _async_run_camera_command(hass, "async_remove_camera", call.data[ATTR_CAMERA_ID])


_SERVICES: dict[str, Callable[[HomeAssistant, ServiceCall], Any]] = {
    SERVICE_TAKE_SNAPSHOT: _async_handle_take_snapshot,
    SERVICE_ENABLE_CAMERA: _async_handle_enable_camera,
    SERVICE_DISABLE_CAMERA: _async_handle_disable_camera,
    SERVICE_REMOVE_CAMERA: _async_handle_remove_camera,
}


@callback
def _async_register_services(hass: HomeAssistant) -> None:
    for service, handler in _SERVICES.items():
        if hass.services.has_service(DOMAIN, service):
            continue
        hass.services.async_register(
            DOMAIN, service, partial(handler, hass), schema=_SERVICE_SCHEMA
        )


def _require_dashboard(hass: HomeAssistant) -> CamHubDashboard:
    dashboard = _dashboard_for_call(hass)
    if dashboard is None:
        raise HomeAssistantError("camhub is not loaded")
    return dashboard


async def _async_run_camera_command(hass: HomeAssistant, method: str, camera_id: str) -> None:
    dashboard = _require_dashboard(hass)
    try:
        ok = await getattr(dashboard, method)(camera_id)
    except CamHubApiError as err:
        raise HomeAssistantError(f"Camera command failed: {err}") from err
    if not ok:
        raise HomeAssistantError(f"CamHub rejected the command for camera {camera_id}")


@websocket_api.websocket_command({"type": "camhub/state"})
@websocket_api.async_response
async def ws_state(
    hass: HomeAssistant, connection: websocket_api.ActiveConnection, msg: dict
) -> None:
    """Return cameras, motion events, snapshots and view states."""
    dashboard = _dashboard_for_call(hass)
    if dashboard is None:
        connection.send_error(msg["id"], "not_loaded", "camhub is not loaded")
        return
    connection.send_result(msg["id"], dashboard.as_dict())


@websocket_api.websocket_command(
    {
        "type": "camhub/snapshot",
        vol.Required(ATTR_CAMERA_ID): cv.string,
    }
)
@websocket_api.async_response
async def ws_take_snapshot(
    hass: HomeAssistant, connection: websocket_api.ActiveConnection, msg: dict
) -> None:
    """Take a snapshot and return the new history record."""
    dashboard = _dashboard_for_call(hass)
    if dashboard is None:
        connection.send_error(msg["id"], "not_loaded", "camhub is not loaded")
        return
    try:
        record = await dashboard.async_take_snapshot(msg[ATTR_CAMERA_ID])
    except CamHubApiError as err:
        connection.send_error(msg["id"], "snapshot_failed", str(err))
        return
    connection.send_result(msg["id"], {"snapshot": record.as_dict() if record else None})


def _dashboard_config_from_entry(entry: CamHubConfigEntry) -> DashboardConfig:
    return DashboardConfig(
        webrtc_base_override=entry.data.get(CONF_WEBRTC_BASE) or None,
        camera_scan_interval=_clamped_option(
            entry,
            CONF_CAMERA_SCAN_INTERVAL,
            DEFAULT_CAMERA_SCAN_INTERVAL,
            MIN_CAMERA_SCAN_INTERVAL,
            MAX_CAMERA_SCAN_INTERVAL,
        ),
        motion_scan_interval=_clamped_option(
            entry,
            CONF_MOTION_SCAN_INTERVAL,
            DEFAULT_MOTION_SCAN_INTERVAL,
            MIN_MOTION_SCAN_INTERVAL,
            MAX_MOTION_SCAN_INTERVAL,
        ),
        motion_limit=_clamped_option(
            entry, CONF_MOTION_LIMIT, DEFAULT_MOTION_LIMIT, MIN_MOTION_LIMIT, MAX_MOTION_LIMIT
        ),
    )


def _clamped_option(
    entry: CamHubConfigEntry, key: str, default: int, minimum: int, maximum: int
) -> int:
    raw = entry.options.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = default
    return max(minimum, min(maximum, value))
