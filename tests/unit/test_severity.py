"""Unit tests for Severity ordering and name parsing."""

import logging

import pytest

from txlogger.modules.pipeline.severity import Severity


@pytest.mark.unit
class TestSeverityOrdering:
    def test_error_is_most_restrictive_real_tier(self):
        assert Severity.ERROR > Severity.WARN > Severity.INFO > Severity.DEBUG
        assert Severity.DEBUG > Severity.FINE > Severity.FINER > Severity.FINEST

    def test_none_is_above_every_tier(self):
        assert all(Severity.NONE > tier for tier in Severity if tier is not Severity.NONE)


@pytest.mark.unit
class TestSeverityParse:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("ERROR", Severity.ERROR),
            ("error", Severity.ERROR),
            ("  Info ", Severity.INFO),
            ("WARN", Severity.WARN),
            ("warning", Severity.WARN),
            ("finest", Severity.FINEST),
            ("NONE", Severity.NONE),
        ],
    )
    def test_known_names(self, name, expected):
        assert Severity.parse(name) is expected

    @pytest.mark.parametrize("name", [None, "", "   ", "LOUD", "verbose"])
    def test_unknown_or_blank_defaults_to_debug(self, name):
        assert Severity.parse(name) is Severity.DEBUG


@pytest.mark.unit
class TestLoggingLevels:
    def test_maps_to_stdlib_levels(self):
        assert Severity.ERROR.to_logging_level() == logging.ERROR
        assert Severity.WARN.to_logging_level() == logging.WARNING
        assert Severity.INFO.to_logging_level() == logging.INFO
        assert Severity.DEBUG.to_logging_level() == logging.DEBUG
        assert Severity.FINEST.to_logging_level() < logging.DEBUG
