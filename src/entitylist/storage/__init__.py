from .base import KeyValueStorage, storage_key
from .json_storage import JsonFileStorage
from .memory import MemoryStorage

__all__ = ["JsonFileStorage", "KeyValueStorage", "MemoryStorage", "storage_key"]
