"""entitylist: client-side list management for entity collections.

Search, filter, sort and paginate a fetched snapshot; keep per-user view
preferences and an offline fallback snapshot in a key/value store.
"""

__version__ = "0.1.0"
