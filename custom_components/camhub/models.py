"""Data models for the CamHub integration."""

from __future__ import annotations

import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .const import CAMERA_STATUS_OFFLINE


class CamHubApiError(Exception):
    """Raised when the CamHub backend cannot be reached or answers badly."""


@dataclass(frozen=True, slots=True)
class Camera:
    """Cached copy of one backend camera."""

    id: str
    name: str
    status: str = CAMERA_STATUS_OFFLINE
    stream_path: str | None = None
    last_seen: str | None = None
    last_motion_at: str | None = None

    @property
    def stream_key(self) -> str:
        """Path addressing this camera's stream on the media gateway."""
        return self.stream_path or self.id

    @property
    def last_seen_dt(self) -> datetime | None:
        return parse_timestamp(self.last_seen)

    @property
    def last_motion_dt(self) -> datetime | None:
        return parse_timestamp(self.last_motion_at)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Camera":
        camera_id = str(data["id"])
        return cls(
            id=camera_id,
            name=str(data.get("name") or camera_id),
            status=str(data.get("status") or CAMERA_STATUS_OFFLINE),
            stream_path=_optional_str(data.get("stream_path")),
            last_seen=_optional_str(data.get("last_seen")),
            last_motion_at=_optional_str(data.get("last_motion_at")),
        )


@dataclass(frozen=True, slots=True)
class MotionEvent:
    """Motion event as reported by the backend."""

    id: str
    camera_id: str
    ts: str | None
    snapshot_path: str | None = None

    @property
    def ts_dt(self) -> datetime | None:
        return parse_timestamp(self.ts)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MotionEvent":
        return cls(
            id=str(data["id"]),
            camera_id=str(data["camera_id"]),
            ts=_optional_str(data.get("ts")),
            snapshot_path=_optional_str(data.get("snapshot_path")),
        )


@dataclass(frozen=True, slots=True)
class SnapshotRecord:
    """Locally accumulated snapshot; ts is epoch milliseconds."""

    camera_id: str
    ts: int
    url: str

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SnapshotRecord":
        return cls(
            camera_id=str(data["camera_id"]),
            ts=int(data["ts"]),
            url=str(data["url"]),
        )


class LiveStream:
    """Tracks received on one peer connection, grouped as a single stream."""

    def __init__(self) -> None:
        self.tracks: list[Any] = []
        self.video_ready = asyncio.Event()

    @property
    def video_track(self) -> Any | None:
        return next((track for track in self.tracks if track.kind == "video"), None)

    def add_track(self, track: Any) -> None:
        if track in self.tracks:
            return
        self.tracks.append(track)
        if track.kind == "video":
            self.video_ready.set()


@dataclass(slots=True)
class LiveSession:
    """Open WHEP session; owned by exactly one live view controller."""

    peer_connection: Any
    session_url: str | None
    stream: LiveStream
    first_media: asyncio.Future[LiveStream] = field(repr=False)


def parse_cameras(payload: Any) -> tuple[Camera, ...]:
    """Parse a camera list response."""
    if not isinstance(payload, list):
        raise CamHubApiError(f"Expected a camera list, got {type(payload).__name__}")
    try:
        return tuple(Camera.from_dict(item) for item in payload)
    except (KeyError, TypeError, AttributeError) as err:
        raise CamHubApiError(f"Malformed camera entry: {err}") from err


def parse_motion_events(payload: Any) -> tuple[MotionEvent, ...]:
    """Parse a motion event list response."""
    if not isinstance(payload, list):
        raise CamHubApiError(f"Expected a motion list, got {type(payload).__name__}")
    try:
        return tuple(MotionEvent.from_dict(item) for item in payload)
    except (KeyError, TypeError, AttributeError) as err:
        raise CamHubApiError(f"Malformed motion entry: {err}") from err


def parse_timestamp(value: Any) -> datetime | None:
    """Parse epoch milliseconds or an ISO 8601 string."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)) or (isinstance(value, str) and value.isdigit()):
        try:
            return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
