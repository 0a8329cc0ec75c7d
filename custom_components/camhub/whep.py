"""WHEP session negotiation against the media gateway."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Any
from urllib.parse import urljoin

from aiohttp import ClientSession
from aiortc import RTCPeerConnection, RTCSessionDescription

from .const import SDP_CONTENT_TYPE, WHEP_SUFFIX
from .models import LiveSession, LiveStream

_LOGGER = logging.getLogger(__name__)


class NegotiationError(Exception):
    """Offer/answer exchange failed.

    The peer connection that was opened, if any, is attached so the caller
    can dispose of it.
    """

    def __init__(self, message: str, peer_connection: Any | None = None) -> None:
        super().__init__(message)
        self.peer_connection = peer_connection


def build_whep_url(webrtc_base: str, stream_key: str) -> str:
    return f"{webrtc_base.rstrip('/')}/{stream_key}/{WHEP_SUFFIX}"


def resolve_session_url(endpoint_url: str, location: str | None) -> str | None:
    """Resolve a Location header against the WHEP endpoint."""
    if not location:
        return None
    return urljoin(endpoint_url, location)


async def async_negotiate(
    session: ClientSession,
    endpoint_url: str,
    *,
    headers: dict[str, str] | None = None,
    peer_factory: Callable[[], Any] = RTCPeerConnection,
) -> LiveSession:
    """Run one WHEP offer/answer exchange and return the open session."""
    pc = peer_factory()
    stream = LiveStream()
    first_media: asyncio.Future[LiveStream] = asyncio.get_running_loop().create_future()

    @pc.on("track")
    def _on_track(track: Any) -> None:
        stream.add_track(track)
        if not first_media.done():
            first_media.set_result(stream)

    try:
        pc.addTransceiver("video", direction="recvonly")
        pc.addTransceiver("audio", direction="recvonly")
        offer = await pc.createOffer()
        await pc.setLocalDescription(offer)

        request_headers = {**(headers or {}), "Content-Type": SDP_CONTENT_TYPE}
        async with session.post(
            endpoint_url, data=pc.localDescription.sdp, headers=request_headers
        ) as response:
            if response.status >= 400:
                raise NegotiationError(
                    f"WHEP endpoint returned HTTP {response.status}", pc
                )
            answer_sdp = await response.text()
            location = response.headers.get("Location")

        if not answer_sdp.strip():
            raise NegotiationError("WHEP endpoint returned an empty answer", pc)
        await pc.setRemoteDescription(RTCSessionDescription(sdp=answer_sdp, type="answer"))
    except NegotiationError:
        _cancel_pending(first_media)
        raise
    except Exception as err:  # noqa: BLE001
        _cancel_pending(first_media)
        raise NegotiationError(f"WHEP negotiation failed: {err}", pc) from err

    session_url = resolve_session_url(endpoint_url, location)
    _LOGGER.debug("WHEP session established at %s (resource %s)", endpoint_url, session_url)
    return LiveSession(
        peer_connection=pc,
        session_url=session_url,
        stream=stream,
        first_media=first_media,
    )


async def async_close_peer(pc: Any) -> None:
    """Close a peer connection, logging instead of raising."""
    try:
        await pc.close()
    except Exception as err:  # noqa: BLE001
        _LOGGER.debug("Closing peer connection failed: %s", err)


async def async_end_session(
    session: ClientSession,
    session_url: str | None,
    *,
    headers: dict[str, str] | None = None,
) -> None:
    """Best-effort DELETE of a WHEP session resource."""
    if not session_url:
        return
    try:
        async with session.delete(session_url, headers=headers or {}) as response:
            if response.status >= 400:
                _LOGGER.debug(
                    "WHEP session delete %s returned HTTP %s", session_url, response.status
                )
    except Exception as err:  # noqa: BLE001
        _LOGGER.debug("WHEP session delete %s failed: %s", session_url, err)


def _cancel_pending(future: asyncio.Future[Any]) -> None:
    if not future.done():
        future.cancel()
