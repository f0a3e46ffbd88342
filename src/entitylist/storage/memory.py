"""In-process storage; values are deep-copied in and out like a real store."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Dict, Optional

from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._items: Dict[str, Any] = deepcopy(initial or {})

    async def get_item(self, key: str) -> Optional[Any]:
        return deepcopy(self._items.get(key))

    async def set_item(self, key: str, value: Any) -> None:
        self._items[key] = deepcopy(value)

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)

    def peek(self, key: str) -> Optional[Any]:
        return self._items.get(key)
