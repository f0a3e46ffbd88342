"""Default configuration values for entitylist."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Final

# Page sizes offered by the list footer.  A stored page size outside this set
# falls back to ``DEFAULT_PAGE_SIZE`` when preferences are restored.
DEFAULT_PAGE_SIZE: Final[int] = 10
PAGE_SIZE_OPTIONS: Final[tuple[int, ...]] = (10, 20, 50)

# Upper bound on the number of rows requested from the remote source in one
# listing call.  Everything after that happens over the in-memory snapshot.
MAX_FETCH_LIMIT: Final[int] = 100

DEFAULT_DENSITY: Final[str] = "compact"
DENSITY_OPTIONS: Final[tuple[str, ...]] = ("compact", "comfortable")

SEARCH_SCOPE_ALL: Final[str] = "all"
FILTER_LOGICS: Final[tuple[str, ...]] = ("AND", "OR")
MAX_FILTERS: Final[int] = 4

# Tokens accepted by the boolean ``is`` operator.
TRUTHY_TOKENS: Final[frozenset[str]] = frozenset(
    {"active", "true", "yes", "on", "enabled", "1"}
)
FALSY_TOKENS: Final[frozenset[str]] = frozenset(
    {"inactive", "false", "no", "off", "disabled", "0"}
)

PREFERENCES_SCHEMA_ID: Final[str] = "entitylist/preferences@1"

# ---------------------------------------------------------------------------
# Controller timings
# ---------------------------------------------------------------------------

NOTICE_DISMISS_SEC: Final[float] = 4.0

# A listing call that has not answered after this many seconds is abandoned
# and surfaced as ``TIMEOUT``.  ``None`` disables the bound.
FETCH_TIMEOUT_SEC: Final[float | None] = 30.0

STORAGE_DIR_ENV: Final[str] = "ENTITYLIST_STORAGE_DIR"


def default_storage_dir() -> Path:
    """Return the default persistence directory for the current platform."""

    override = os.environ.get(STORAGE_DIR_ENV)
    if override:
        return Path(override)
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "entitylist"
        return Path.home() / "AppData" / "Roaming" / "entitylist"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "entitylist"
    base = os.environ.get("XDG_DATA_HOME")
    if base:
        return Path(base) / "entitylist"
    return Path.home() / ".local" / "share" / "entitylist"
