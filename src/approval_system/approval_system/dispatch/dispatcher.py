"""
Fan-out of routing events to notification subscribers.

Delivery happens after the document is saved. A failing subscriber is
logged and skipped; it never reaches the caller of the transition.
"""

from __future__ import annotations

from concurrent.futures import Executor
from typing import Callable, Iterable, Optional

from ..common.logging_config import get_logger
from ..routing.events import Event, event_to_dict

logger = get_logger("dispatch")

EventHandler = Callable[[Event], None]


class EventDispatcher:
    def __init__(self, subscribers: Iterable[EventHandler] = (), executor: Optional[Executor] = None):
        self._subscribers: list[EventHandler] = list(subscribers)
        self._executor = executor

    def subscribe(self, handler: EventHandler) -> None:
        self._subscribers.append(handler)

    def publish(self, events: Iterable[Event]) -> None:
        for event in events:
            for handler in list(self._subscribers):
                if self._executor is not None:
                    self._executor.submit(self._deliver, handler, event)
                else:
                    self._deliver(handler, event)

    @staticmethod
    def _deliver(handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
        except Exception:
            logger.exception(
                "event handler failed",
                extra={"handler": getattr(handler, "__name__", type(handler).__name__), **event_to_dict(event)},
            )

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


class LoggingNotifier:
    """Subscriber that writes every event to the log."""

    def __init__(self, name: str = "notifications"):
        self._logger = get_logger(name)

    def __call__(self, event: Event) -> None:
        self._logger.info("routing event", extra=event_to_dict(event))
