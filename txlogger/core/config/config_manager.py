"""
Dynamic logger configuration with YAML defaults and in-memory overrides.

Features:
- Hierarchical config access with dot notation (e.g., 'logger.minimum_severity')
- Defaults from a class-level dict, merged with YAML files under config/
- Runtime overrides without restart (hosts flip toggles, tests pin values)
- A revision counter so downstream snapshot caches know when to rebuild
- Performance metrics tracking

Note:
- Static process settings (database URL, log output) live in Config.
- ConfigManager is the settings store read by the pipeline on every record().
"""

from __future__ import annotations

import copy
import time
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from txlogger.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Logger settings store with dot-notation access.

    Lookup order: overrides → YAML/defaults → caller default.
    """

    _cache: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _initialized: bool = False
    _revision: int = 0

    _metrics = {
        "gets": 0,
        "cache_hits": 0,
        "cache_misses": 0,
        "overrides": 0,
        "reloads": 0,
        "errors": 0,
        "total_get_time_ms": 0.0,
    }

    # =========================================================================
    # DEFAULT CONFIGURATIONS
    # =========================================================================
    _defaults: Dict[str, Any] = {
        "logger": {
            "minimum_severity": "DEBUG",
            "debug_sink_enabled": True,
            "store_debug_entries": True,
            "store_exception_entries": True,
            "auto_flush_on_exception": False,
            "system_messages_enabled": True,
            "default_retention_days": 14,
        },
        "consumer": {
            "retry_attempts": 3,
            "backoff_base_seconds": 0.5,
        },
    }

    # =========================================================================
    # INITIALIZATION
    # =========================================================================

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> Dict[str, Any]:
        """
        Recursively load YAML files from config_dir and deep-merge them.

        Files that fail to parse are skipped with a warning so a bad file
        never takes logging down with it.
        """
        merged: Dict[str, Any] = {}
        if not config_dir.exists():
            logger.debug("Config directory not found, skipping YAML loading",
                         extra={"config_dir": str(config_dir)})
            return merged

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        for yaml_file in yaml_files:
            try:
                with open(yaml_file, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={"file": str(yaml_file), "error": str(exc)},
                )
                continue
            if isinstance(data, dict):
                _deep_merge(merged, data)
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})

        logger.info(
            "YAML configs loaded",
            extra={"yaml_count": len(yaml_files), "config_dir": str(config_dir)},
        )
        return merged

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """Build the cache from defaults plus YAML files in config_dir (default ./config)."""
        cache = copy.deepcopy(cls._defaults)
        _deep_merge(cache, cls._load_yaml_configs(config_dir or Path("config")))
        cls._cache = cache
        cls._initialized = True
        cls._revision += 1
        cls._metrics["reloads"] += 1
        logger.info(
            "ConfigManager initialized",
            extra={"top_level_keys": sorted(cls._cache), "revision": cls._revision},
        )

    # =========================================================================
    # PUBLIC METHODS
    # =========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve config value by dot notation path.

        >>> ConfigManager.get("logger.minimum_severity")
        'DEBUG'
        >>> ConfigManager.get("logger.unknown_key", 5)
        5
        """
        start_time = time.perf_counter()
        cls._metrics["gets"] += 1

        if not cls._initialized:
            cls._cache = copy.deepcopy(cls._defaults)
            cls._initialized = True

        try:
            if key in cls._overrides:
                cls._metrics["cache_hits"] += 1
                return cls._overrides[key]

            value = _traverse(cls._cache, key)
            if value is _MISSING:
                cls._metrics["cache_misses"] += 1
                return default

            cls._metrics["cache_hits"] += 1
            return value
        finally:
            cls._metrics["total_get_time_ms"] += (time.perf_counter() - start_time) * 1000

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Pin a value at runtime; takes precedence over YAML and defaults."""
        cls._overrides[key] = value
        cls._revision += 1
        cls._metrics["overrides"] += 1
        logger.info("ConfigManager override set", extra={"config_key": key, "revision": cls._revision})

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides.clear()
        cls._revision += 1

    @classmethod
    def clear_cache(cls) -> None:
        """Drop cache and overrides and reset initialization state."""
        cls._cache = {}
        cls._overrides.clear()
        cls._initialized = False
        cls._revision += 1

    @classmethod
    def revision(cls) -> int:
        return cls._revision

    # =========================================================================
    # METRICS
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Dict[str, Any]:
        total_gets = cls._metrics["gets"]
        return {
            "gets": total_gets,
            "cache_hits": cls._metrics["cache_hits"],
            "cache_misses": cls._metrics["cache_misses"],
            "cache_hit_rate": round(cls._metrics["cache_hits"] / total_gets * 100, 2) if total_gets else 0.0,
            "overrides": cls._metrics["overrides"],
            "reloads": cls._metrics["reloads"],
            "errors": cls._metrics["errors"],
            "avg_get_time_ms": round(cls._metrics["total_get_time_ms"] / total_gets, 4) if total_gets else 0.0,
            "initialized": cls._initialized,
            "revision": cls._revision,
        }

    @classmethod
    def reset_metrics(cls) -> None:
        cls._metrics = {name: 0.0 if name.endswith("_ms") else 0 for name in cls._metrics}


def _traverse(data: Dict[str, Any], key: str) -> Any:
    value: Any = data
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
