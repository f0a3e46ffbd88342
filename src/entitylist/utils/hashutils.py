"""Hashing utilities."""

from __future__ import annotations

import json
from typing import Any

import xxhash


def payload_xxh3(payload: Any) -> str:
    """Return the XXH3 128-bit hash of *payload*'s canonical JSON form."""

    encoded = json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    ).encode("utf-8")
    hasher = xxhash.xxh3_128()
    hasher.update(encoded)
    return hasher.hexdigest()
