"""Record source and remover backed by a local JSON file.

Used by the command line tool and handy as a stand-in backend.  The file
holds either a bare list of records or ``{"items": [...]}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..application.dtos import resolve_list_items
from ..application.interfaces import IRecordRemover, IRecordSource
from ..errors import FetchError
from ..utils.jsonio import read_json, write_json
from ..utils.text import normalize_value

LOGGER = logging.getLogger(__name__)


class JsonFileRecordSource(IRecordSource, IRecordRemover):
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_records(self) -> List[Any]:
        try:
            payload = read_json(self._path)
        except FileNotFoundError as exc:
            raise FetchError("NOT_FOUND", f"{self._path} does not exist") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise FetchError("UNKNOWN_ERROR", f"cannot read {self._path}: {exc}") from exc
        records = resolve_list_items(payload)
        if records is None:
            raise FetchError("INVALID_PAYLOAD", f"{self._path} holds no record list")
        return records

    async def fetch_page(self, params: Dict[str, Any]) -> Dict[str, Any]:
        records = await asyncio.to_thread(self._read_records)
        tenant_id = normalize_value(params.get("tenant_id"))
        if tenant_id:
            records = [
                record
                for record in records
                if isinstance(record, dict) and normalize_value(record.get("tenant_id")) == tenant_id
            ]
        page = max(int(params.get("page", 1)), 1)
        limit = int(params.get("limit") or len(records) or 1)
        start = (page - 1) * limit
        return {"items": records[start:start + limit], "total": len(records)}

    async def delete_one(self, record_id: str) -> bool:
        async with self._lock:
            return await asyncio.to_thread(self._delete_sync, normalize_value(record_id))

    def _delete_sync(self, record_id: str) -> bool:
        records = self._read_records()
        remaining = [
            record
            for record in records
            if not (isinstance(record, dict) and normalize_value(record.get("id")) == record_id)
        ]
        if len(remaining) == len(records):
            LOGGER.info("Record %s not found in %s", record_id, self._path)
            return False
        write_json(self._path, remaining)
        return True
