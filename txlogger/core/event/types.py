"""
Core event types for the txlogger EventBus.

Priority Levels
---------------
- NORMAL (50): concurrent (asyncio.gather), awaited by the publisher.
- LOW (100): fire-and-forget background task. The storage consumer
  subscribes here, which is what makes a pipeline flush non-blocking.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

# Should be JSON-serializable; not enforced.
EventPayload = dict[str, Any]

CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


class ListenerPriority(Enum):
    """Lower value runs earlier; value also selects the concurrency tier."""

    NORMAL = 50
    LOW = 100


@dataclass(slots=True, frozen=True)
class EventListener:
    """
    A registered listener.

    Attributes
    ----------
    callback:
        Async or sync callable invoked with the event payload.
    priority:
        Execution tier.
    identifier:
        Unique id used for deduplication and unsubscription.
    """

    callback: CallbackType
    priority: ListenerPriority
    identifier: str

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
    ) -> EventListener:
        """Create a listener, deriving `module.qualname@event` when no identifier is given."""
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(callback, "__qualname__", getattr(callback, "__name__", "callback"))
            identifier = f"{module}.{qualname}@{event_name}"

        return cls(callback=callback, priority=priority, identifier=identifier)
