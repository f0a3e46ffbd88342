"""Observer primitives for the view-model layer.

``Signal`` delivers callbacks; ``ObservableProperty`` wraps one piece of
state and emits ``changed(new_value, old_value)`` when it is replaced.  Both
live on the event-loop thread, so emission is plain sequential dispatch.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

_logger = logging.getLogger(__name__)


class Signal:
    """Callback list with isolated handler failures.

    An exception raised by one handler is logged and does not prevent the
    remaining handlers from running (same contract as ``EventBus``).
    """

    def __init__(self) -> None:
        self._handlers: list[Callable] = []

    def connect(self, handler: Callable) -> Callable:
        if handler not in self._handlers:
            self._handlers.append(handler)
        return handler

    def disconnect(self, handler: Callable) -> None:
        self._handlers.remove(handler)

    def disconnect_all(self) -> None:
        self._handlers.clear()

    def emit(self, *args: Any, **kwargs: Any) -> None:
        for handler in list(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception as exc:
                _logger.error("Signal handler %r failed: %s", handler, exc)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)


class ObservableProperty:
    """Single value that notifies ``changed(new, old)`` on replacement."""

    def __init__(self, initial_value: Any = None) -> None:
        self._value = initial_value
        self.changed = Signal()

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        if self._value != new_value:
            old_value = self._value
            self._value = new_value
            self.changed.emit(new_value, old_value)
