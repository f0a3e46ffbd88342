"""One JSON file per key under a directory."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote

from ..config import default_storage_dir
from ..errors import StorageError
from ..utils.jsonio import read_json, write_json
from .base import KeyValueStorage

LOGGER = logging.getLogger(__name__)


class JsonFileStorage(KeyValueStorage):
    """Blocking file I/O runs in a worker thread so the event loop stays free."""

    def __init__(self, directory: Path | None = None) -> None:
        self._directory = directory or default_storage_dir()

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{quote(key, safe='.-_@')}.json"

    async def get_item(self, key: str) -> Optional[Any]:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"cannot read {path}: {exc}") from exc

    async def set_item(self, key: str, value: Any) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(write_json, path, value)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"cannot write {path}: {exc}") from exc
        LOGGER.debug("Stored %s", key)

    async def remove_item(self, key: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError(f"cannot remove {path}: {exc}") from exc

    @staticmethod
    def _read(path: Path) -> Optional[Any]:
        if not path.exists():
            return None
        return read_json(path)
