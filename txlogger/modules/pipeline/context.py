"""
Execution context captured with every log entry.

A `ContextSnapshot` is immutable and taken once per built entry. Providers:

- ProcessContextProvider: samples the live process (CPU time, traced heap,
  locale, timezone) and merges host-supplied counters, flags and identity.
- StaticContextProvider: returns a fixed snapshot.
"""

from __future__ import annotations

import locale
import os
import time
import tracemalloc
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Protocol

LIMIT_KEYS: tuple[str, ...] = (
    "queries",
    "dml_rows",
    "dml_statements",
    "cpu_time",
    "heap_size",
    "callouts",
    "async_calls",
    "future_calls",
    "queueable_jobs",
    "email_invocations",
    "push_notifications",
    "search_queries",
    "query_locator_rows",
    "query_rows",
    "aggregate_queries",
)

FLAG_KEYS: tuple[str, ...] = (
    "is_batch",
    "is_future",
    "is_queueable",
    "is_scheduled",
    "is_trigger",
    "is_ui_page",
    "is_api_request",
)

IDENTITY_KEYS: tuple[str, ...] = (
    "user_id",
    "username",
    "profile_name",
    "role_name",
    "session_type",
    "session_id",
)

# cpu_time in milliseconds, heap_size in bytes
DEFAULT_LIMIT_MAXIMUMS: Mapping[str, int] = MappingProxyType(
    {
        "queries": 100,
        "dml_rows": 10_000,
        "dml_statements": 150,
        "cpu_time": 10_000,
        "heap_size": 6_000_000,
        "callouts": 100,
        "async_calls": 50,
        "future_calls": 50,
        "queueable_jobs": 50,
        "email_invocations": 10,
        "push_notifications": 10,
        "search_queries": 20,
        "query_locator_rows": 10_000,
        "query_rows": 50_000,
        "aggregate_queries": 300,
    }
)


@dataclass(frozen=True)
class LimitUsage:
    used: int = 0
    maximum: int = 0


def _empty_limits() -> Mapping[str, LimitUsage]:
    return MappingProxyType({key: LimitUsage(0, DEFAULT_LIMIT_MAXIMUMS[key]) for key in LIMIT_KEYS})


@dataclass(frozen=True)
class ContextSnapshot:
    limits: Mapping[str, LimitUsage] = field(default_factory=_empty_limits)

    is_batch: bool = False
    is_future: bool = False
    is_queueable: bool = False
    is_scheduled: bool = False
    is_trigger: bool = False
    is_ui_page: bool = False
    is_api_request: bool = False

    user_id: Optional[str] = None
    username: Optional[str] = None
    profile_name: Optional[str] = None
    role_name: Optional[str] = None
    session_type: Optional[str] = None
    session_id: Optional[str] = None

    locale: Optional[str] = None
    timezone: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            name: getattr(self, name) for name in (*FLAG_KEYS, *IDENTITY_KEYS, "locale", "timezone")
        }
        data["limits"] = {key: {"used": usage.used, "maximum": usage.maximum} for key, usage in self.limits.items()}
        return data

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> ContextSnapshot:
        if not data:
            return cls()
        limits = {
            key: LimitUsage(int(value.get("used", 0)), int(value.get("maximum", 0)))
            for key, value in (data.get("limits") or {}).items()
        }
        return cls(
            limits=MappingProxyType(limits),
            **{name: bool(data.get(name, False)) for name in FLAG_KEYS},
            **{name: data.get(name) for name in (*IDENTITY_KEYS, "locale", "timezone")},
        )


class ContextProvider(Protocol):
    def capture(self) -> ContextSnapshot: ...


class StaticContextProvider:
    """Returns the same snapshot on every capture."""

    def __init__(self, snapshot: Optional[ContextSnapshot] = None, **fields: Any) -> None:
        self._snapshot = snapshot or ContextSnapshot(**fields)
        self.captures = 0

    def capture(self) -> ContextSnapshot:
        self.captures += 1
        return self._snapshot


class ProcessContextProvider:
    """
    Samples the current Python process.

    `cpu_time` comes from `time.process_time()` and `heap_size` from
    tracemalloc (zero unless tracing was started). All other counters are
    read from `usage`, a host callable returning current values by key.
    """

    def __init__(
        self,
        *,
        usage: Optional[Callable[[], Mapping[str, int]]] = None,
        maximums: Optional[Mapping[str, int]] = None,
        flags: Optional[Mapping[str, bool]] = None,
        identity: Optional[Mapping[str, Optional[str]]] = None,
    ) -> None:
        unknown = (set(flags or {}) - set(FLAG_KEYS)) | (set(identity or {}) - set(IDENTITY_KEYS))
        if unknown:
            raise ValueError(f"Unknown context fields: {sorted(unknown)}")

        self._usage = usage
        self._maximums = {**DEFAULT_LIMIT_MAXIMUMS, **(maximums or {})}
        self._flags = dict(flags or {})
        self._identity = {"username": os.environ.get("USER") or os.environ.get("USERNAME"), **(identity or {})}

    def capture(self) -> ContextSnapshot:
        counters = dict(self._usage() if self._usage else {})
        counters["cpu_time"] = int(time.process_time() * 1000)
        counters["heap_size"] = tracemalloc.get_traced_memory()[0] if tracemalloc.is_tracing() else 0

        limits = MappingProxyType(
            {key: LimitUsage(int(counters.get(key, 0)), int(self._maximums[key])) for key in LIMIT_KEYS}
        )

        return ContextSnapshot(
            limits=limits,
            **self._flags,
            **self._identity,
            locale=locale.getlocale()[0],
            timezone=datetime.now().astimezone().tzname(),
        )
