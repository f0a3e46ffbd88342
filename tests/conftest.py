import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from entitylist.application.dtos import AccessScope  # noqa: E402
from entitylist.application.interfaces import IRecordRemover, IRecordSource  # noqa: E402
from entitylist.domain.wards import WARD_SCHEMA, WardFieldResolver  # noqa: E402
from entitylist.events.bus import EventBus  # noqa: E402
from entitylist.gui.viewmodels.list_controller import ListController  # noqa: E402
from entitylist.storage.memory import MemoryStorage  # noqa: E402


def make_ward(index: int, **overrides):
    ward = {
        "id": f"w{index}",
        "name": f"ward_{index:02d}",
        "tenant_id": "t1",
        "tenant_name": "North Clinic",
        "facility_name": "Main Building",
        "ward_type": "general",
        "is_active": True,
    }
    ward.update(overrides)
    return ward


class FakeSource(IRecordSource):
    """Records the params of each call and replays queued results."""

    def __init__(self, payload=None):
        self.payload = payload if payload is not None else []
        self.calls = []
        self.error = None
        self.gate = None

    async def fetch_page(self, params):
        self.calls.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.payload


class FakeRemover(IRecordRemover):
    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []

    async def delete_one(self, record_id):
        self.calls.append(record_id)
        outcome = self.results.get(record_id, True)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def wards():
    return [make_ward(i) for i in range(1, 26)]


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def make_controller(storage, event_bus):
    def _make(
        records=None,
        *,
        scope=None,
        source=None,
        remover=None,
        resolver=None,
        store=None,
        **kwargs,
    ):
        source = source or FakeSource(records if records is not None else [])
        controller = ListController(
            WARD_SCHEMA,
            resolver or WardFieldResolver(),
            source,
            store or storage,
            scope or AccessScope(subject_id="u1", tenant_id="t1"),
            event_bus,
            remover=remover,
            **kwargs,
        )
        controller.test_source = source
        return controller

    return _make


async def settle(controller):
    """Let owned tasks and pending writes finish."""
    await asyncio.sleep(0)
    await controller.wait_idle()
    await controller.flush()
