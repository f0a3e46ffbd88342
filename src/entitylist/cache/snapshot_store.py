"""Last known-good record snapshot, served while the network is offline."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List

from ..domain.fields import FieldSchema
from ..errors import CacheCorruptedError, StorageError
from ..storage.base import KeyValueStorage, storage_key
from ..utils.hashutils import payload_xxh3

LOGGER = logging.getLogger(__name__)


def _unwrap(stored: Any) -> List[Any]:
    if isinstance(stored, list):
        return stored
    if not isinstance(stored, dict) or not isinstance(stored.get("items"), list):
        return []
    items = stored["items"]
    checksum = stored.get("checksum")
    if checksum is not None and checksum != payload_xxh3(items):
        raise CacheCorruptedError("snapshot checksum mismatch")
    return items


class CacheFallbackStore:
    """Exactly one snapshot per ``(subject, scope)`` key; no TTL, no eviction."""

    def __init__(
        self,
        storage: KeyValueStorage,
        fields: FieldSchema,
        subject_id: str,
        scope: str,
    ) -> None:
        self._storage = storage
        self._key = storage_key(fields.storage_namespace, "cache", subject_id, scope)
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    async def load(self) -> List[Any]:
        """Return the cached snapshot; anything unusable reads as empty."""

        try:
            stored = await self._storage.get_item(self._key)
            return list(_unwrap(stored))
        except StorageError as exc:
            LOGGER.warning("Discarding cached snapshot %s: %s", self._key, exc)
            return []

    async def save(self, records: List[Any]) -> None:
        snapshot = list(records)
        payload = {"items": snapshot, "checksum": payload_xxh3(snapshot)}
        async with self._lock:
            await self._storage.set_item(self._key, payload)
        LOGGER.debug("Cached %d record(s) under %s", len(snapshot), self._key)
