import logging
from unittest.mock import Mock

import pytest

from entitylist.errors import FetchError, RequestTimeoutError
from entitylist.errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from entitylist.events.bus import EventBus
from entitylist.events.list_events import RecordChangedEvent, RecordsDeletedEvent


class TestEventBus:
    def test_sync_handlers_run_inline(self):
        bus = EventBus()
        received = []
        bus.subscribe(RecordChangedEvent, received.append)

        event = RecordChangedEvent(namespace="n", record_id="w1")
        bus.publish(event)

        assert received == [event]

    def test_only_matching_type_is_delivered(self):
        bus = EventBus()
        received = []
        bus.subscribe(RecordChangedEvent, received.append)

        bus.publish(RecordsDeletedEvent(namespace="n"))

        assert received == []

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        received = []

        def bad(_event):
            raise RuntimeError("boom")

        bus.subscribe(RecordChangedEvent, bad)
        bus.subscribe(RecordChangedEvent, received.append)
        bus.publish(RecordChangedEvent())

        assert len(received) == 1

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        sub = bus.subscribe(RecordChangedEvent, received.append)
        bus.unsubscribe(sub)
        bus.publish(RecordChangedEvent())
        assert received == []

    def test_async_handler_without_loop_is_dropped(self):
        bus = EventBus()

        async def handler(_event):
            pass

        bus.subscribe(RecordChangedEvent, handler, async_=True)
        bus.publish(RecordChangedEvent())

    @pytest.mark.asyncio
    async def test_async_handlers_are_scheduled(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append(event.record_id)

        bus.subscribe(RecordChangedEvent, handler, async_=True)
        bus.publish(RecordChangedEvent(record_id="w1"))
        assert received == []

        await bus.drain()
        assert received == ["w1"]

    @pytest.mark.asyncio
    async def test_publish_async_awaits_every_handler(self):
        bus = EventBus()
        received = []

        async def handler(event):
            received.append("async")

        bus.subscribe(RecordChangedEvent, handler, async_=True)
        bus.subscribe(RecordChangedEvent, lambda e: received.append("sync"))
        await bus.publish_async(RecordChangedEvent())

        assert sorted(received) == ["async", "sync"]


class TestErrorHandler:
    def test_logs_and_publishes(self):
        logger = Mock(spec=logging.Logger)
        event_bus = Mock(spec=EventBus)
        handler = ErrorHandler(logger, event_bus)

        error = FetchError("FORBIDDEN")
        handler.handle(error, ErrorSeverity.ERROR, context={"namespace": "n"})

        logger.error.assert_called()
        event = event_bus.publish.call_args[0][0]
        assert isinstance(event, ErrorOccurredEvent)
        assert event.error is error
        assert event.context == {"namespace": "n"}

    def test_warning_uses_warning_level(self):
        logger = Mock(spec=logging.Logger)
        handler = ErrorHandler(logger, Mock(spec=EventBus))
        handler.handle(ValueError("meh"), ErrorSeverity.WARNING)
        logger.warning.assert_called()

    def test_ui_callback_gets_error_code(self):
        handler = ErrorHandler(Mock(spec=logging.Logger), Mock(spec=EventBus))
        callback = Mock()
        handler.register_ui_callback(callback)

        handler.handle(RequestTimeoutError(30), ErrorSeverity.ERROR)
        handler.handle(RuntimeError("plain"), ErrorSeverity.CRITICAL)

        assert callback.call_args_list[0].args == ("TIMEOUT", ErrorSeverity.ERROR)
        assert callback.call_args_list[1].args == ("plain", ErrorSeverity.CRITICAL)

    def test_info_is_not_shown(self):
        handler = ErrorHandler(Mock(spec=logging.Logger), Mock(spec=EventBus))
        callback = Mock()
        handler.register_ui_callback(callback)
        handler.handle(Exception("info"), ErrorSeverity.INFO)
        callback.assert_not_called()


class TestErrors:
    def test_fetch_error_code(self):
        assert FetchError().code == "UNKNOWN_ERROR"
        assert FetchError("", "msg").code == "UNKNOWN_ERROR"
        assert str(FetchError("FORBIDDEN")) == "FORBIDDEN"

    def test_timeout_error(self):
        error = RequestTimeoutError(2.5)
        assert error.code == "TIMEOUT"
        assert error.timeout == 2.5
        assert "2.5s" in str(error)
