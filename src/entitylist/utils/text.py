"""String normalisation helpers shared by filtering, sorting and sanitising."""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Optional

from ..config import FALSY_TOKENS, TRUTHY_TOKENS

_IDENTIFIER_SEPARATORS = re.compile(r"[_\-\s]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_value(value: Any) -> str:
    """Return *value* as a trimmed plain string; ``None`` becomes ``""``."""

    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).strip()


def normalize_lower(value: Any) -> str:
    return normalize_value(value).casefold()


def parse_boolean_token(value: Any) -> Optional[bool]:
    """Map *value* onto the tri-state used by the ``is`` operator.

    Returns ``True`` for truthy tokens (``active``, ``yes``, ``1`` ...),
    ``False`` for falsy tokens and ``None`` when the token is not recognised.
    """

    if isinstance(value, bool):
        return value
    token = normalize_lower(value)
    if token in TRUTHY_TOKENS:
        return True
    if token in FALSY_TOKENS:
        return False
    return None


def humanize_identifier(value: Any) -> str:
    """Turn ``general_ward`` / ``generalWard`` style identifiers into ``General Ward``.

    Values that already contain spaces and upper-case letters are treated as
    display labels and only trimmed.
    """

    text = normalize_value(value)
    if not text:
        return ""
    if " " in text and text != text.lower():
        return text
    spaced = _CAMEL_BOUNDARY.sub(" ", text)
    words = [word for word in _IDENTIFIER_SEPARATORS.split(spaced) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))
