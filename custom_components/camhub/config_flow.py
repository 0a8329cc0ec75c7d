"""Config flow for CamHub."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlsplit

from homeassistant import config_entries
from homeassistant.helpers import selector
from homeassistant.helpers.aiohttp_client import async_get_clientsession
import voluptuous as vol

from .api import CamHubApiClient
from .const import (
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
)
from .models import CamHubApiError


class CamHubConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle config flow for CamHub."""

    VERSION = 1

    async def async_step_user(self, user_input=None):
        """Ask for the backend address and verify it answers."""
        if self._async_current_entries():
            return self.async_abort(reason="single_instance_allowed")

        errors: dict[str, str] = {}
        if user_input is not None:
            api_base = _normalize_base_url(user_input.get(CONF_API_BASE))
            webrtc_base = _normalize_base_url(user_input.get(CONF_WEBRTC_BASE))
            token = str(user_input.get(CONF_TOKEN) or "").strip() or None
            if api_base is None:
                errors[CONF_API_BASE] = "invalid_url"
            elif user_input.get(CONF_WEBRTC_BASE) and webrtc_base is None:
                errors[CONF_WEBRTC_BASE] = "invalid_url"
            else:
                client = CamHubApiClient(async_get_clientsession(self.hass), api_base, token)
                try:
                    await client.async_get_config()
                except CamHubApiError:
                    errors["base"] = "cannot_connect"
                else:
                    return self.async_create_entry(
                        title=urlsplit(api_base).netloc or "CamHub",
                        data={
                            CONF_API_BASE: api_base,
                            CONF_TOKEN: token,
                            CONF_WEBRTC_BASE: webrtc_base,
                        },
                    )

        defaults = user_input or {}
        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_API_BASE, default=defaults.get(CONF_API_BASE, "")
                    ): selector.TextSelector(
                        selector.TextSelectorConfig(type=selector.TextSelectorType.URL)
                    ),
                    vol.Optional(CONF_TOKEN): selector.TextSelector(
                        selector.TextSelectorConfig(type=selector.TextSelectorType.PASSWORD)
                    ),
                    vol.Optional(
                        CONF_WEBRTC_BASE, default=defaults.get(CONF_WEBRTC_BASE, "")
                    ): selector.TextSelector(
                        selector.TextSelectorConfig(type=selector.TextSelectorType.URL)
                    ),
                }
            ),
            errors=errors,
        )

    @staticmethod
    def async_get_options_flow(config_entry: config_entries.ConfigEntry) -> CamHubOptionsFlow:
        """Get options flow."""
        return CamHubOptionsFlow(config_entry)


class CamHubOptionsFlow(config_entries.OptionsFlow):
    """Handle options flow for CamHub."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._config_entry = config_entry

    async def async_step_init(self, user_input=None):
        """Manage poll intervals and the motion query size."""
        source = user_input if user_input is not None else self._config_entry.options
        camera_interval = _coerce_int(
            source.get(CONF_CAMERA_SCAN_INTERVAL),
            default=DEFAULT_CAMERA_SCAN_INTERVAL,
            minimum=MIN_CAMERA_SCAN_INTERVAL,
            maximum=MAX_CAMERA_SCAN_INTERVAL,
        )
        motion_interval = _coerce_int(
            source.get(CONF_MOTION_SCAN_INTERVAL),
            default=DEFAULT_MOTION_SCAN_INTERVAL,
            minimum=MIN_MOTION_SCAN_INTERVAL,
            maximum=MAX_MOTION_SCAN_INTERVAL,
        )
        motion_limit = _coerce_int(
            source.get(CONF_MOTION_LIMIT),
            default=DEFAULT_MOTION_LIMIT,
            minimum=MIN_MOTION_LIMIT,
            maximum=MAX_MOTION_LIMIT,
        )
        if user_input is not None:
            return self.async_create_entry(
                title="",
                data={
                    CONF_CAMERA_SCAN_INTERVAL: camera_interval,
                    CONF_MOTION_SCAN_INTERVAL: motion_interval,
                    CONF_MOTION_LIMIT: motion_limit,
                },
            )

        return self.async_show_form(
            step_id="init",
            data_schema=vol.Schema(
                {
                    vol.Required(
                        CONF_CAMERA_SCAN_INTERVAL, default=camera_interval
                    ): _box(MIN_CAMERA_SCAN_INTERVAL, MAX_CAMERA_SCAN_INTERVAL),
                    vol.Required(
                        CONF_MOTION_SCAN_INTERVAL, default=motion_interval
                    ): _box(MIN_MOTION_SCAN_INTERVAL, MAX_MOTION_SCAN_INTERVAL),
                    vol.Required(CONF_MOTION_LIMIT, default=motion_limit): _box(
                        MIN_MOTION_LIMIT, MAX_MOTION_LIMIT
                    ),
                }
            ),
        )


def _box(minimum: int, maximum: int) -> selector.NumberSelector:
    return selector.NumberSelector(
        selector.NumberSelectorConfig(
            min=minimum,
            max=maximum,
            step=1,
            mode=selector.NumberSelectorMode.BOX,
        )
    )


def _coerce_int(value: Any, *, default: int, minimum: int, maximum: int) -> int:
    try:
        coerced = int(value) if value is not None else default
    except (TypeError, ValueError):
        coerced = default
    return max(minimum, min(maximum, coerced))


def _normalize_base_url(value: Any) -> str | None:
    """Return an http(s) base URL without trailing slash, or None."""
    text = str(value or "").strip().rstrip("/")
    if not text:
        return None
    parts = urlsplit(text)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return text
