from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from entitylist.cache.snapshot_store import CacheFallbackStore
from entitylist.domain.wards import WARD_SCHEMA
from entitylist.errors import StorageError
from entitylist.storage.json_storage import JsonFileStorage
from entitylist.storage.memory import MemoryStorage
from entitylist.utils.hashutils import payload_xxh3

KEY = "hms.settings.wards.list.cache.u1.all"
RECORDS = [{"id": "w1", "name": "a"}, {"id": "w2", "name": "b"}]


class TestPayloadHash:
    def test_key_order_does_not_matter(self):
        assert payload_xxh3({"a": 1, "b": 2}) == payload_xxh3({"b": 2, "a": 1})

    def test_content_changes_the_hash(self):
        assert payload_xxh3([1, 2]) != payload_xxh3([2, 1])
        assert len(payload_xxh3([])) == 32


class TestCacheFallbackStore:
    @pytest.mark.asyncio
    async def test_save_wraps_with_checksum(self):
        storage = MemoryStorage()
        store = CacheFallbackStore(storage, WARD_SCHEMA, "u1", "all")
        await store.save(RECORDS)

        stored = storage.peek(KEY)
        assert stored["items"] == RECORDS
        assert stored["checksum"] == payload_xxh3(RECORDS)
        assert await store.load() == RECORDS

    @pytest.mark.asyncio
    async def test_bare_list_is_accepted(self):
        store = CacheFallbackStore(MemoryStorage({KEY: RECORDS}), WARD_SCHEMA, "u1", "all")
        assert await store.load() == RECORDS

    @pytest.mark.asyncio
    async def test_checksum_mismatch_reads_empty(self):
        tampered = {"items": RECORDS[:1], "checksum": payload_xxh3(RECORDS)}
        store = CacheFallbackStore(MemoryStorage({KEY: tampered}), WARD_SCHEMA, "u1", "all")
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_garbage_reads_empty(self):
        store = CacheFallbackStore(MemoryStorage({KEY: {"rows": 3}}), WARD_SCHEMA, "u1", "all")
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_storage_failure_reads_empty(self):
        storage = MemoryStorage()
        storage.get_item = AsyncMock(side_effect=StorageError("disk gone"))
        store = CacheFallbackStore(storage, WARD_SCHEMA, "u1", "all")
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_newer_snapshot_replaces_older(self):
        storage = MemoryStorage()
        store = CacheFallbackStore(storage, WARD_SCHEMA, "u1", "all")
        await store.save(RECORDS)
        await store.save(RECORDS[1:])
        assert await store.load() == RECORDS[1:]


class TestJsonFileStorage:
    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        await storage.set_item(KEY, {"items": RECORDS})

        path = storage.path_for(KEY)
        assert path.parent == tmp_path
        assert json.loads(path.read_text(encoding="utf-8")) == {"items": RECORDS}
        assert await storage.get_item(KEY) == {"items": RECORDS}

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, tmp_path):
        assert await JsonFileStorage(tmp_path).get_item("nothing.here") is None

    @pytest.mark.asyncio
    async def test_corrupted_file_raises_storage_error(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        storage.path_for(KEY).write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError):
            await storage.get_item(KEY)

    @pytest.mark.asyncio
    async def test_remove_is_idempotent(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        await storage.set_item(KEY, [1])
        await storage.remove_item(KEY)
        await storage.remove_item(KEY)
        assert not storage.path_for(KEY).exists()

    def test_unsafe_characters_are_quoted(self, tmp_path):
        path = JsonFileStorage(tmp_path).path_for("ns.preferences.a/b.self")
        assert path.parent == tmp_path
        assert "/" not in path.name

    def test_default_directory_honours_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ENTITYLIST_STORAGE_DIR", str(tmp_path))
        assert JsonFileStorage().directory == tmp_path
