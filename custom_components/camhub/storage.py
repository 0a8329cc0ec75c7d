"""Storage helpers for CamHub snapshot history."""

from __future__ import annotations

from collections.abc import Iterable
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.helpers.storage import Store

from .const import STORAGE_KEY, STORAGE_VERSION
from .models import SnapshotRecord

_LOGGER = logging.getLogger(__name__)


class SnapshotStore:
    """Persist and load snapshot history using Home Assistant storage."""

    def __init__(self, hass: HomeAssistant) -> None:
        self._store: Store[dict[str, Any]] = Store(hass, STORAGE_VERSION, STORAGE_KEY)

    async def async_load(self) -> list[SnapshotRecord]:
        data = await self._store.async_load()
        if not data:
            return []
        records: list[SnapshotRecord] = []
        for raw in data.get("snapshots", []):
            try:
                records.append(SnapshotRecord.from_dict(raw))
            except (KeyError, TypeError, ValueError):
                _LOGGER.debug("Skipping unreadable snapshot record: %s", raw)
        return records

    async def async_save(self, records: Iterable[SnapshotRecord]) -> None:
        await self._store.async_save({"snapshots": [record.as_dict() for record in records]})
