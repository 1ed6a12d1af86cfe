"""
Static configuration for txlogger.

Purpose
-------
Centralized static configuration loaded from environment variables (with
.env support) and safe defaults. Covers everything that is fixed for the
lifetime of the process: environment, stdlib logging output, database
connection and the purge job's chunk size.

Non-Responsibilities
--------------------
- Logger policy (minimum severity, storage toggles, auto-flush) lives in
  ConfigManager, which can change at runtime.
- Secrets management (use environment variables).

Environment Variables
---------------------
- TXLOGGER_ENV: development | testing | staging | production (default: development)
- LOG_LEVEL: stdlib log level for the process (default: INFO)
- LOG_JSON: force JSON console output (default: production only)
- LOG_COLORS: colored console output in development (default: True)
- LOGS_DIR: directory for the rotating JSON log file (default: ./logs)
- DATABASE_URL: SQLAlchemy async URL (default: sqlite+aiosqlite:///./txlogger.db)
- DATABASE_ECHO: echo SQL statements (default: False)
- PURGE_CHUNK_SIZE: records per purge chunk (default: 200)
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger may not be initialized yet
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


def _env_bool(name: str, default: Optional[bool]) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logging.warning(f"Invalid integer for {name}={raw!r}, using default {default}")
        return default
    return max(minimum, value)


class Config:
    """
    Static process configuration.

    Singleton via class attributes; call `Config.reload()` after changing
    the environment (tests do this through monkeypatch).
    """

    ENVIRONMENT: str = Environment.DEVELOPMENT.value
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOGS_DIR: Path = Path("logs")

    DATABASE_URL: str = "sqlite+aiosqlite:///./txlogger.db"
    DATABASE_ECHO: bool = False

    PURGE_CHUNK_SIZE: int = 200

    @classmethod
    def reload(cls) -> None:
        """Re-read every value from the environment."""
        cls.ENVIRONMENT = Environment.from_string(
            os.getenv("TXLOGGER_ENV", Environment.DEVELOPMENT.value)
        ).value
        cls.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        cls.LOG_JSON = _env_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(_env_bool("LOG_COLORS", True))
        cls.LOGS_DIR = Path(os.getenv("LOGS_DIR", "logs"))

        cls.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./txlogger.db")
        cls.DATABASE_ECHO = bool(_env_bool("DATABASE_ECHO", False))

        cls.PURGE_CHUNK_SIZE = _env_int("PURGE_CHUNK_SIZE", 200, minimum=1)

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical settings.

        Raises
        ------
        ValueError
            If a setting cannot be used.
        """
        if not cls.DATABASE_URL:
            raise ValueError("DATABASE_URL must be set")
        if "+" not in cls.DATABASE_URL.split(":", 1)[0]:
            raise ValueError(
                "DATABASE_URL must name an async driver "
                "(e.g. postgresql+asyncpg:// or sqlite+aiosqlite://)"
            )
        if cls.LOG_LEVEL not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL '{cls.LOG_LEVEL}' is not a logging level")

    @classmethod
    def as_dict(cls) -> Dict[str, Any]:
        """Non-secret configuration snapshot for startup logs."""
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "log_json": cls.LOG_JSON,
            "logs_dir": str(cls.LOGS_DIR),
            "database_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "database_echo": cls.DATABASE_ECHO,
            "purge_chunk_size": cls.PURGE_CHUNK_SIZE,
        }


Config.reload()
