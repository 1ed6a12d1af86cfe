"""
In-process asynchronous publish/subscribe bus.

The bus is the asynchronous channel of the log pipeline: a flush publishes a
single "log.entries.published" event and the storage consumer, subscribed at
LOW priority, persists it in a background task. Publishing therefore never
waits for storage and never sees storage errors.

Listener failures are isolated by the scheduler (logged, counted, swallowed).
"""

from __future__ import annotations

import inspect
from typing import Any, Optional

from txlogger.core.event.metrics import EventMetrics, EventMetricsRecorder
from txlogger.core.event.registry import ListenerRegistry
from txlogger.core.event.scheduler import EventScheduler
from txlogger.core.event.types import CallbackType, EventListener, EventPayload, ListenerPriority
from txlogger.core.logging.logger import get_logger

logger = get_logger(__name__)


class EventBus:
    """Async event bus with an awaited (NORMAL) and a background (LOW) tier."""

    def __init__(self) -> None:
        self._registry = ListenerRegistry()
        self._scheduler = EventScheduler()
        self._metrics = EventMetricsRecorder()
        logger.debug("EventBus initialized")

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Reject callbacks that cannot take exactly one payload argument."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = list(sig.parameters.values())
        if len(params) != 1:
            name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
    ) -> str:
        """
        Subscribe a callback to an event name.

        Returns the listener identifier for later unsubscription.

        >>> bus.subscribe("log.entries.published", consumer.handle, priority=ListenerPriority.LOW)
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(event_name, callback, priority, identifier)
        if self._registry.add_listener(event_name, listener):
            self._metrics.adjust_listener_count(1)
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )

        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name, identifier)
        if removed:
            self._metrics.adjust_listener_count(-1)
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    # ------------------------------------------------------------------ #
    # Publish
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Publish an event to every listener of `event_name`.

        Returns the results of NORMAL listeners; LOW listeners run in the
        background and contribute nothing.
        """
        self._metrics.record_publish(event_name)

        listeners = self._registry.listeners_for_event(event_name)
        if not listeners:
            logger.debug("EventBus: no listeners for event", extra={"event_name": event_name})
            return []

        logger.debug(
            "EventBus: publishing event",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )

        return await self._scheduler.execute(
            event_name=event_name,
            payload=data,
            listeners=listeners,
            metrics=self._metrics,
            logger=logger,
        )

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for background (LOW) listeners to finish.

        Used on shutdown and in tests. Returns the number of tasks still
        pending after the timeout.
        """
        return await self._scheduler.wait_for_background_tasks(timeout)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_metrics(self) -> EventMetrics:
        return self._metrics.snapshot(self._scheduler.get_background_task_count())

    def get_metrics_summary(self) -> dict[str, Any]:
        return self.get_metrics().get_summary()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name:
            return self._registry.get_listener_count_for_event(event_name)
        return self._registry.get_total_listener_count()
