from .snapshot_store import CacheFallbackStore

__all__ = ["CacheFallbackStore"]
