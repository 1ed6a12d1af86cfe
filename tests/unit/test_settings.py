"""Unit tests for ConfigManager and the settings providers built on it."""

import pytest

from txlogger.core.config.config_manager import ConfigManager
from txlogger.core.exceptions import ConfigurationError
from txlogger.modules.pipeline import (
    ConfigSettingsProvider,
    InMemorySettingsProvider,
    LoggerSettings,
    Severity,
)


@pytest.mark.unit
class TestConfigManager:
    def test_defaults_are_available_without_initialize(self):
        assert ConfigManager.get("logger.minimum_severity") == "DEBUG"
        assert ConfigManager.get("consumer.retry_attempts") == 3

    def test_missing_key_returns_default(self):
        assert ConfigManager.get("logger.nope", "fallback") == "fallback"

    def test_override_wins_and_bumps_revision(self):
        before = ConfigManager.revision()

        ConfigManager.set_override("logger.minimum_severity", "ERROR")

        assert ConfigManager.get("logger.minimum_severity") == "ERROR"
        assert ConfigManager.revision() > before

    def test_clear_overrides(self):
        ConfigManager.set_override("logger.store_debug_entries", False)

        ConfigManager.clear_overrides()

        assert ConfigManager.get("logger.store_debug_entries") is True

    def test_initialize_merges_yaml(self, tmp_path):
        # Arrange
        (tmp_path / "logger.yaml").write_text(
            "logger:\n  minimum_severity: WARN\n  default_retention_days: 30\n",
            encoding="utf-8",
        )

        # Act
        ConfigManager.initialize(tmp_path)

        # Assert
        assert ConfigManager.get("logger.minimum_severity") == "WARN"
        assert ConfigManager.get("logger.default_retention_days") == 30
        assert ConfigManager.get("logger.store_debug_entries") is True

    def test_broken_yaml_is_skipped(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("logger: [unclosed\n", encoding="utf-8")

        ConfigManager.initialize(tmp_path)

        assert ConfigManager.get("logger.minimum_severity") == "DEBUG"

    def test_metrics_count_gets(self):
        ConfigManager.reset_metrics()
        ConfigManager.get("logger.minimum_severity")
        ConfigManager.get("logger.missing")

        metrics = ConfigManager.get_metrics()

        assert metrics["gets"] == 2
        assert metrics["cache_misses"] == 1


@pytest.mark.unit
class TestConfigSettingsProvider:
    def test_defaults(self):
        assert ConfigSettingsProvider().get_settings() == LoggerSettings()

    def test_snapshot_is_cached_until_revision_changes(self, mocker):
        provider = ConfigSettingsProvider()
        first = provider.get_settings()
        spy = mocker.spy(ConfigManager, "get")

        assert provider.get_settings() is first
        assert spy.call_count == 0

        ConfigManager.set_override("logger.minimum_severity", "warning")
        rebuilt = provider.get_settings()

        assert rebuilt is not first
        assert rebuilt.minimum_severity is Severity.WARN

    @pytest.mark.parametrize("raw, expected", [("false", False), ("On", True), (0, False), (True, True)])
    def test_boolean_values_are_coerced(self, raw, expected):
        ConfigManager.set_override("logger.store_debug_entries", raw)

        assert ConfigSettingsProvider().get_settings().store_debug_entries is expected

    def test_invalid_boolean_raises(self):
        ConfigManager.set_override("logger.auto_flush_on_exception", "sometimes")

        with pytest.raises(ConfigurationError) as exc_info:
            ConfigSettingsProvider().get_settings()

        assert exc_info.value.details["config_key"] == "logger.auto_flush_on_exception"

    def test_invalid_retention_raises(self):
        ConfigManager.set_override("logger.default_retention_days", "two weeks")

        with pytest.raises(ConfigurationError):
            ConfigSettingsProvider().get_settings()

    def test_unknown_severity_name_falls_back_to_debug(self):
        ConfigManager.set_override("logger.minimum_severity", "LOUD")

        assert ConfigSettingsProvider().get_settings().minimum_severity is Severity.DEBUG


@pytest.mark.unit
class TestInMemorySettingsProvider:
    def test_update_returns_new_snapshot(self):
        provider = InMemorySettingsProvider()
        original = provider.get_settings()

        updated = provider.update(minimum_severity=Severity.ERROR)

        assert provider.get_settings() is updated
        assert original.minimum_severity is Severity.DEBUG
        assert updated.minimum_severity is Severity.ERROR
