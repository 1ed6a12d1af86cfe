"""Unit tests for execution context capture."""

import pytest

from txlogger.modules.pipeline import ContextSnapshot, LimitUsage, ProcessContextProvider, StaticContextProvider
from txlogger.modules.pipeline.context import DEFAULT_LIMIT_MAXIMUMS, LIMIT_KEYS


@pytest.mark.unit
class TestProcessContextProvider:
    def test_samples_process_and_host_counters(self):
        provider = ProcessContextProvider(
            usage=lambda: {"queries": 12, "dml_rows": 40},
            maximums={"queries": 200},
            flags={"is_batch": True},
            identity={"user_id": "005xx", "username": "batch@example.com"},
        )

        snapshot = provider.capture()

        assert snapshot.limits["queries"] == LimitUsage(12, 200)
        assert snapshot.limits["dml_rows"] == LimitUsage(40, DEFAULT_LIMIT_MAXIMUMS["dml_rows"])
        assert snapshot.limits["cpu_time"].used >= 0
        assert set(snapshot.limits) == set(LIMIT_KEYS)
        assert snapshot.is_batch is True
        assert snapshot.is_trigger is False
        assert snapshot.username == "batch@example.com"
        assert snapshot.timezone

    def test_each_capture_is_a_new_snapshot(self):
        counter = {"queries": 0}

        def usage():
            counter["queries"] += 1
            return dict(counter)

        provider = ProcessContextProvider(usage=usage)

        first = provider.capture()
        second = provider.capture()

        assert first.limits["queries"].used == 1
        assert second.limits["queries"].used == 2

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValueError, match="is_weekend"):
            ProcessContextProvider(flags={"is_weekend": True})


@pytest.mark.unit
class TestSnapshot:
    def test_static_provider_counts_captures(self):
        provider = StaticContextProvider(locale="de_DE")

        provider.capture()
        snapshot = provider.capture()

        assert provider.captures == 2
        assert snapshot.locale == "de_DE"

    def test_snapshot_is_immutable(self):
        snapshot = ContextSnapshot()

        with pytest.raises(TypeError):
            snapshot.limits["queries"] = LimitUsage(1, 1)

    def test_dict_round_trip(self):
        snapshot = StaticContextProvider(user_id="u1", is_api_request=True).capture()

        assert ContextSnapshot.from_dict(snapshot.to_dict()) == snapshot
