"""Video sink receiving the live stream of one camera view."""

from __future__ import annotations

import asyncio
import io
import logging
from typing import Any

from aiortc.mediastreams import MediaStreamError
from homeassistant.core import HomeAssistant

from .models import LiveStream

_LOGGER = logging.getLogger(__name__)


class VideoSink:
    """Holds the attached stream and its most recent video frame."""

    def __init__(self, hass: HomeAssistant, name: str) -> None:
        self.hass = hass
        self._name = name
        self._stream: LiveStream | None = None
        self._latest_frame: Any | None = None
        self._reader: asyncio.Task[None] | None = None

    @property
    def src_object(self) -> LiveStream | None:
        return self._stream

    @property
    def has_frame(self) -> bool:
        return self._latest_frame is not None

    def attach(self, stream: LiveStream) -> bool:
        """Attach a stream; attaching the stream already held is a no-op."""
        if self._stream is stream:
            return False
        self._stop_reader()
        self._stream = stream
        self._latest_frame = None
        self._reader = self.hass.async_create_background_task(
            self._async_read_frames(stream), f"camhub frame reader {self._name}"
        )
        return True

    def release(self) -> None:
        """Stop reading frames and drop the attached stream."""
        self._stop_reader()
        self._stream = None
        self._latest_frame = None

    async def async_image(self) -> bytes | None:
        """Return the latest frame encoded as JPEG."""
        frame = self._latest_frame
        if frame is None:
            return None
        return await self.hass.async_add_executor_job(_encode_jpeg, frame)

    def _stop_reader(self) -> None:
        if self._reader is not None and not self._reader.done():
            self._reader.cancel()
        self._reader = None

    async def _async_read_frames(self, stream: LiveStream) -> None:
        await stream.video_ready.wait()
        track = stream.video_track
        if track is None:
            return
        while True:
            try:
                frame = await track.recv()
            except MediaStreamError:
                _LOGGER.debug("Video track ended for %s", self._name)
                return
            if self._stream is not stream:
                return
            self._latest_frame = frame


def _encode_jpeg(frame: Any) -> bytes:
    buffer = io.BytesIO()
    frame.to_image().save(buffer, format="JPEG")
    return buffer.getvalue()
