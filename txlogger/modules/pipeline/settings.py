"""
Logger policy settings and the providers that supply them.

The pipeline reads a `LoggerSettings` snapshot on every `record()`.
`ConfigSettingsProvider` builds that snapshot from ConfigManager and keeps
it until ConfigManager's revision changes, so repeated reads within a
transaction are a dict lookup away from free.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional, Protocol

from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.exceptions import ConfigurationError
from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.severity import Severity

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoggerSettings:
    minimum_severity: Severity = Severity.DEBUG
    debug_sink_enabled: bool = True
    store_debug_entries: bool = True
    store_exception_entries: bool = True
    auto_flush_on_exception: bool = False
    system_messages_enabled: bool = True
    default_retention_days: int = 14

    def with_changes(self, **changes: Any) -> LoggerSettings:
        return replace(self, **changes)


class SettingsProvider(Protocol):
    def get_settings(self) -> LoggerSettings: ...


class InMemorySettingsProvider:
    """Mutable provider for hosts that manage settings themselves, and for tests."""

    def __init__(self, settings: Optional[LoggerSettings] = None) -> None:
        self._settings = settings or LoggerSettings()

    def get_settings(self) -> LoggerSettings:
        return self._settings

    def update(self, **changes: Any) -> LoggerSettings:
        self._settings = self._settings.with_changes(**changes)
        return self._settings


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "1", "yes", "on", "false", "0", "no", "off"}:
        return value.strip().lower() in {"true", "1", "yes", "on"}
    if isinstance(value, int):
        return bool(value)
    raise ConfigurationError(key, value, "expected a boolean")


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(key, value, "expected an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(key, value, "expected an integer") from exc


class ConfigSettingsProvider:
    """
    SettingsProvider backed by ConfigManager (`logger.*` keys).

    >>> provider = ConfigSettingsProvider()
    >>> ConfigManager.set_override("logger.minimum_severity", "INFO")
    >>> provider.get_settings().minimum_severity
    <Severity.INFO: 5>
    """

    PREFIX = "logger"

    def __init__(self, config_manager: type[ConfigManager] = ConfigManager) -> None:
        self._config = config_manager
        self._cached: Optional[LoggerSettings] = None
        self._cached_revision: Optional[int] = None

    def get_settings(self) -> LoggerSettings:
        revision = self._config.revision()
        if self._cached is None or revision != self._cached_revision:
            self._cached = self._build()
            self._cached_revision = revision
            logger.debug(
                "Logger settings snapshot rebuilt",
                extra={
                    "revision": revision,
                    "minimum_severity": self._cached.minimum_severity.name,
                },
            )
        return self._cached

    def _get(self, name: str, default: Any) -> Any:
        return self._config.get(f"{self.PREFIX}.{name}", default)

    def _build(self) -> LoggerSettings:
        defaults = LoggerSettings()
        raw_severity = self._get("minimum_severity", defaults.minimum_severity.name)
        minimum = raw_severity if isinstance(raw_severity, Severity) else Severity.parse(raw_severity)

        def flag(name: str) -> bool:
            key = f"{self.PREFIX}.{name}"
            return _as_bool(key, self._get(name, getattr(defaults, name)))

        return LoggerSettings(
            minimum_severity=minimum,
            debug_sink_enabled=flag("debug_sink_enabled"),
            store_debug_entries=flag("store_debug_entries"),
            store_exception_entries=flag("store_exception_entries"),
            auto_flush_on_exception=flag("auto_flush_on_exception"),
            system_messages_enabled=flag("system_messages_enabled"),
            default_retention_days=_as_int(
                f"{self.PREFIX}.default_retention_days",
                self._get("default_retention_days", defaults.default_retention_days),
            ),
        )
