from .schema import build_preferences_schema, sanitize_preferences
from .store import PreferenceStore

__all__ = ["PreferenceStore", "build_preferences_schema", "sanitize_preferences"]
