"""HTTP client for the CamHub backend."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import ClientError, ClientSession, ClientTimeout

from .const import DEFAULT_MOTION_LIMIT, REQUEST_TIMEOUT_SECONDS
from .models import (
    Camera,
    CamHubApiError,
    MotionEvent,
    parse_cameras,
    parse_motion_events,
)

_LOGGER = logging.getLogger(__name__)


class CamHubApiClient:
    """Thin wrapper around the CamHub REST endpoints."""

    def __init__(self, session: ClientSession, api_base: str = "", token: str | None = None) -> None:
        self._session = session
        self._api_base = (api_base or "").rstrip("/")
        self._token = token or None
        self._timeout = ClientTimeout(total=REQUEST_TIMEOUT_SECONDS)

    @property
    def api_base(self) -> str:
        return self._api_base

    @property
    def session(self) -> ClientSession:
        return self._session

    def build_url(self, path: str) -> str:
        if not self._api_base:
            return path
        return f"{self._api_base}{path}"

    def resolve_asset_url(self, path: str) -> str:
        """Return an absolute URL for a backend-relative asset path."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return self.build_url(path)

    def auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    async def async_get_config(self) -> dict[str, Any]:
        data = await self._async_request("GET", "/api/config")
        if not isinstance(data, dict):
            raise CamHubApiError("Expected a config object")
        return data

    async def async_list_cameras(self) -> tuple[Camera, ...]:
        return parse_cameras(await self._async_request("GET", "/api/cameras"))

    async def async_list_motion(self, limit: int = DEFAULT_MOTION_LIMIT) -> tuple[MotionEvent, ...]:
        return parse_motion_events(
            await self._async_request("GET", "/api/motion", params={"limit": str(limit)})
        )

    async def async_take_snapshot(self, camera_id: str) -> dict[str, Any]:
        return await self._async_command("POST", f"/api/snapshots/{camera_id}")

    async def async_enable_camera(self, camera_id: str) -> dict[str, Any]:
        return await self._async_command("POST", f"/api/cameras/{camera_id}/enable")

    async def async_disable_camera(self, camera_id: str) -> dict[str, Any]:
        return await self._async_command("POST", f"/api/cameras/{camera_id}/disable")

    async def async_delete_camera(self, camera_id: str) -> dict[str, Any]:
        return await self._async_command("DELETE", f"/api/cameras/{camera_id}")

    async def _async_command(self, method: str, path: str) -> dict[str, Any]:
        data = await self._async_request(method, path)
        if not isinstance(data, dict):
            raise CamHubApiError(f"{method} {path} returned {type(data).__name__}")
        return data

    async def _async_request(
        self, method: str, path: str, *, params: dict[str, str] | None = None
    ) -> Any:
        url = self.build_url(path)
        try:
            async with self._session.request(
                method,
                url,
                params=params,
                headers=self.auth_headers(),
                timeout=self._timeout,
            ) as response:
                if response.status >= 400:
                    raise CamHubApiError(f"{method} {path} failed: HTTP {response.status}")
                return await response.json(content_type=None)
        except (ClientError, TimeoutError, ValueError) as err:
            _LOGGER.debug("CamHub request %s %s failed: %s", method, url, err)
            raise CamHubApiError(f"{method} {path} failed: {err}") from err
