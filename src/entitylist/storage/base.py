from abc import ABC, abstractmethod
from typing import Any, Optional

from ..utils.text import normalize_value


def storage_key(namespace: str, kind: str, subject_id: str, scope: str) -> str:
    """Compose ``<namespace>.<kind>.<subject>.<scope>``."""
    parts = [namespace, kind, normalize_value(subject_id) or "anonymous", normalize_value(scope) or "self"]
    return ".".join(parts)


class KeyValueStorage(ABC):
    """Async key/value store holding JSON-compatible values."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[Any]:
        """Return the stored value or ``None`` when *key* is absent."""
        pass

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        pass
