"""
Tiered execution of EventBus listeners.

- NORMAL: concurrent via asyncio.gather, awaited
- LOW: background tasks, tracked so they are not garbage collected early

Every listener runs inside its own try/except: a failing listener is logged
and counted, never raised into the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Optional

from txlogger.core.event.metrics import EventMetricsRecorder
from txlogger.core.event.types import EventListener, EventPayload, ListenerPriority


def handle_listener_error(
    *,
    logger: Logger,
    event_name: str,
    listener: EventListener,
    exc: BaseException,
    metrics: EventMetricsRecorder,
) -> None:
    metrics.record_error(event_name)

    logger.error(
        "EventBus listener error",
        extra={
            "event_name": event_name,
            "listener_id": listener.identifier,
            "priority": listener.priority.name,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=exc,
    )


class EventScheduler:
    """Runs an ordered listener list according to the priority tiers."""

    def __init__(self) -> None:
        self._background_tasks: set[asyncio.Task[Any]] = set()

    async def execute(
        self,
        *,
        event_name: str,
        payload: EventPayload,
        listeners: list[EventListener],
        metrics: EventMetricsRecorder,
        logger: Logger,
    ) -> list[Any]:
        """
        Execute listeners; returns results of the NORMAL tier only.

        LOW listeners are scheduled and the call returns without waiting
        for them.
        """
        normal = [lst for lst in listeners if lst.priority is ListenerPriority.NORMAL]
        low = [lst for lst in listeners if lst.priority is ListenerPriority.LOW]

        results: list[Any] = []
        if normal:
            results.extend(
                await asyncio.gather(
                    *(self._run_listener(lst, event_name, payload, metrics, logger) for lst in normal)
                )
            )

        if low:
            loop = asyncio.get_running_loop()
            for listener in low:
                task = loop.create_task(
                    self._run_listener(listener, event_name, payload, metrics, logger),
                    name=f"eventbus-low-{event_name}-{listener.identifier}",
                )
                self._background_tasks.add(task)
                task.add_done_callback(self._background_tasks.discard)

        return results

    async def _run_listener(
        self,
        listener: EventListener,
        event_name: str,
        payload: EventPayload,
        metrics: EventMetricsRecorder,
        logger: Logger,
    ) -> Any:
        try:
            if inspect.iscoroutinefunction(listener.callback):
                return await listener.callback(payload)

            # sync callbacks go to the default executor
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(None, listener.callback, payload)
        except Exception as exc:
            handle_listener_error(
                logger=logger, event_name=event_name, listener=listener, exc=exc, metrics=metrics
            )
            return None

    def get_background_task_count(self) -> int:
        return len(self._background_tasks)

    async def wait_for_background_tasks(self, timeout: Optional[float] = None) -> int:
        """
        Wait for in-flight LOW listeners. Returns how many were still pending
        when the timeout expired.
        """
        if not self._background_tasks:
            return 0
        _, pending = await asyncio.wait(set(self._background_tasks), timeout=timeout)
        return len(pending)
