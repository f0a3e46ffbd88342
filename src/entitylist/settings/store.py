"""Persist and restore list preferences keyed by subject and scope."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from jsonschema import ValidationError

from ..domain.fields import FieldSchema
from ..domain.models import Preferences
from ..errors import PreferencesValidationError, StorageError
from ..storage.base import KeyValueStorage, storage_key
from .schema import sanitize_preferences, validate_preferences

LOGGER = logging.getLogger(__name__)


class PreferenceStore:
    """One preference bundle per ``(subject, scope)`` key.

    Saves overwrite the whole bundle (last write wins) and are serialised so
    only one write per key is in flight at a time.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        fields: FieldSchema,
        subject_id: str,
        scope: str,
    ) -> None:
        self._storage = storage
        self._fields = fields
        self._key = storage_key(fields.storage_namespace, "preferences", subject_id, scope)
        self._lock = asyncio.Lock()

    @property
    def key(self) -> str:
        return self._key

    async def load(self, next_filter_id: Callable[[], str]) -> Optional[Preferences]:
        """Return the stored bundle, sanitised field by field, or ``None``.

        Unreadable storage is treated like an empty one.
        """

        try:
            payload = await self._storage.get_item(self._key)
        except StorageError as exc:
            LOGGER.warning("Ignoring unreadable preferences %s: %s", self._key, exc)
            return None
        if not isinstance(payload, dict):
            return None
        return sanitize_preferences(payload, self._fields, next_filter_id)

    async def save(self, preferences: Preferences) -> None:
        payload = preferences.to_payload(self._fields)
        try:
            validate_preferences(payload, self._fields)
        except ValidationError as exc:
            raise PreferencesValidationError(exc.message) from exc
        async with self._lock:
            await self._storage.set_item(self._key, payload)

    async def clear(self) -> None:
        async with self._lock:
            await self._storage.remove_item(self._key)
