"""
Listener registry for the txlogger EventBus.

Maps event names to their listeners, kept sorted so a published event gets
a deterministic execution order.

Not thread-safe: all mutation happens on one event loop, and dict/list
mutations are atomic between awaits.
"""

from __future__ import annotations

from txlogger.core.event.types import EventListener


def _sort_key(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


class ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}

    def add_listener(self, event_name: str, listener: EventListener) -> bool:
        """Register a listener. Returns False when its identifier is already registered."""
        listeners = self._listeners.setdefault(event_name, [])
        if any(existing.identifier == listener.identifier for existing in listeners):
            return False

        listeners.append(listener)
        listeners.sort(key=_sort_key)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return False

        kept = [lst for lst in listeners if lst.identifier != identifier]
        if kept:
            self._listeners[event_name] = kept
        else:
            del self._listeners[event_name]
        return len(kept) < len(listeners)

    def listeners_for_event(self, event_name: str) -> list[EventListener]:
        """Snapshot of the listeners for `event_name`, sorted by (priority, identifier)."""
        return list(self._listeners.get(event_name, []))

    def get_listener_count_for_event(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, []))

    def get_total_listener_count(self) -> int:
        return sum(len(lst) for lst in self._listeners.values())
