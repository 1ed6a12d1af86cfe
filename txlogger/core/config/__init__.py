"""
txlogger configuration.

- config.Config: static, environment-driven process settings
- config_manager.ConfigManager: dot-notation logger settings with YAML
  defaults and runtime overrides (import it from its module; it depends on
  the logging subsystem, which itself reads Config)
"""

from txlogger.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
