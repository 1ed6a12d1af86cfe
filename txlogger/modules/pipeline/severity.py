"""Severity tiers, entry kinds and origin types."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Optional


class Severity(IntEnum):
    """
    Ordered log severity. A higher value is more restrictive.

    An entry passes the level filter iff ``entry.severity >= minimum``, so a
    minimum of NONE keeps nothing.
    """

    FINEST = 1
    FINER = 2
    FINE = 3
    DEBUG = 4
    INFO = 5
    WARN = 6
    ERROR = 7
    NONE = 8

    @classmethod
    def parse(cls, name: Optional[str]) -> Severity:
        """
        Resolve a severity name, case-insensitively.

        Unknown or blank names fall back to DEBUG.

        >>> Severity.parse("warning")
        <Severity.WARN: 6>
        >>> Severity.parse("loud")
        <Severity.DEBUG: 4>
        """
        if not name:
            return cls.DEBUG
        key = str(name).strip().upper()
        if key == "WARNING":
            key = "WARN"
        try:
            return cls[key]
        except KeyError:
            return cls.DEBUG

    def to_logging_level(self) -> int:
        """Stdlib level used by the diagnostic sink."""
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS = {
    Severity.FINEST: 5,
    Severity.FINER: 5,
    Severity.FINE: 5,
    Severity.DEBUG: logging.DEBUG,
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
    Severity.NONE: logging.CRITICAL,
}


class EntryKind(str, Enum):
    DEBUG = "DEBUG"
    EXCEPTION = "EXCEPTION"


class OriginType(str, Enum):
    """Which ingestion surface produced an entry."""

    APEX = "APEX"
    WORKFLOW = "WORKFLOW"
    UI_COMPONENT = "UI_COMPONENT"
