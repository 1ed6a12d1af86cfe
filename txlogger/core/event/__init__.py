"""
txlogger EventBus: the in-process asynchronous channel.

    from txlogger.core.event import EventBus, ListenerPriority

    bus = EventBus()
    bus.subscribe("log.entries.published", handler, priority=ListenerPriority.LOW)
    await bus.publish("log.entries.published", payload)
"""

from txlogger.core.event.bus import EventBus
from txlogger.core.event.metrics import EventMetrics
from txlogger.core.event.types import EventListener, EventPayload, ListenerPriority

__all__ = [
    "EventBus",
    "EventListener",
    "EventMetrics",
    "EventPayload",
    "ListenerPriority",
]
