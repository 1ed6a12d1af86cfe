"""
Unit tests for entry building: truncation, tag normalization, request
variants and the channel payload.
"""

import pytest

from txlogger.modules.pipeline.builder import EntryBuilder
from txlogger.modules.pipeline.context import ContextSnapshot, StaticContextProvider
from txlogger.modules.pipeline.entry import (
    MAX_EXCEPTION_TYPE_LENGTH,
    MAX_MESSAGE_LENGTH,
    DebugEntryRequest,
    ErrorPayload,
    ExceptionEntryRequest,
    FieldLimits,
    LogEntry,
    join_tags,
    normalize_tags,
    truncate,
)
from txlogger.modules.pipeline.severity import EntryKind, OriginType, Severity


@pytest.mark.unit
class TestTruncate:
    def test_longer_than_limit_is_cut_to_exactly_limit(self):
        value, truncated = truncate("0123456789ABC", 10)

        assert value == "0123456789"
        assert len(value) == 10
        assert truncated is True

    @pytest.mark.parametrize("message", ["", "short", "0123456789"])
    def test_within_limit_is_unchanged(self, message):
        assert truncate(message, 10) == (message, False)

    def test_none_passes_through(self):
        assert truncate(None, 10) == (None, False)


@pytest.mark.unit
class TestTags:
    def test_strips_drops_empty_and_dedupes_in_order(self):
        assert normalize_tags([" b ", "a", "", "b", "   ", "c"]) == ("b", "a", "c")

    def test_embedded_newline_is_escaped(self):
        tags = normalize_tags(["line1\nline2"])

        assert tags == ("line1\\nline2",)
        assert join_tags(tags) == "line1\\nline2"

    def test_joined_with_newline(self):
        assert join_tags(("a", "b")) == "a\nb"
        assert join_tags(()) is None


@pytest.mark.unit
class TestEntryBuilder:
    @pytest.fixture
    def builder(self):
        return EntryBuilder(StaticContextProvider(username="tester"))

    def test_debug_request(self, builder):
        request = DebugEntryRequest(
            message="hello",
            origin_type=OriginType.APEX,
            origin_location="orders.place:10",
            severity=Severity.INFO,
            linked_record_id="rec-1",
            tags=("orders",),
        )

        entry = builder.build(request, "tx-1")

        assert entry.kind is EntryKind.DEBUG
        assert entry.severity is Severity.INFO
        assert entry.message == "hello"
        assert entry.transaction_id == "tx-1"
        assert entry.linked_record_id == "rec-1"
        assert entry.tags == ("orders",)
        assert entry.context.username == "tester"
        assert entry.timestamp.tzinfo is not None

    def test_entry_ids_are_unique(self, builder):
        request = DebugEntryRequest(message="x", origin_type=OriginType.APEX)

        ids = {builder.build(request, "tx").entry_id for _ in range(50)}

        assert len(ids) == 50

    def test_missing_severity_defaults_to_debug(self, builder):
        entry = builder.build(DebugEntryRequest(message="x", origin_type=OriginType.APEX), "tx")
        assert entry.severity is Severity.DEBUG

    def test_exception_request_forces_kind_severity_and_message(self, builder):
        request = ExceptionEntryRequest.of(
            ValueError("bad value"),
            OriginType.APEX,
            requested_severity=Severity.FINEST,
        )

        entry = builder.build(request, "tx")

        assert entry.kind is EntryKind.EXCEPTION
        assert entry.severity is Severity.ERROR
        assert entry.message == "bad value"
        assert entry.exception_type == "ValueError"
        assert entry.exception_message == "bad value"
        assert "ValueError: bad value" in entry.stack_trace

    def test_each_field_truncates_independently(self):
        builder = EntryBuilder(
            StaticContextProvider(),
            limits=FieldLimits(message=5, exception_type=4, stack_trace=6, origin_location=3),
        )
        request = ExceptionEntryRequest(
            error=ErrorPayload(type_name="LongTypeName", message="abcdefgh", stack_trace="frame1\nframe2"),
            origin_type=OriginType.UI_COMPONENT,
            origin_location="cmp",
        )

        entry = builder.build(request, "tx")

        assert (entry.message, entry.message_truncated) == ("abcde", True)
        assert (entry.exception_type, entry.exception_type_truncated) == ("Long", True)
        assert (entry.stack_trace, entry.stack_trace_truncated) == ("frame1", True)
        assert (entry.origin_location, entry.origin_location_truncated) == ("cmp", False)

    def test_default_limits(self):
        limits = FieldLimits()
        assert limits.message == MAX_MESSAGE_LENGTH == 131_072
        assert limits.exception_type == MAX_EXCEPTION_TYPE_LENGTH == 255
        assert limits.origin_location == 255


@pytest.mark.unit
class TestPayload:
    def test_payload_is_json_safe_and_restorable(self):
        import json

        builder = EntryBuilder(StaticContextProvider(user_id="u1", is_trigger=True))
        entry = builder.build(
            DebugEntryRequest(message="m", origin_type=OriginType.WORKFLOW, tags=("a", "b")), "tx-9"
        )

        payload = json.loads(json.dumps(entry.to_payload()))
        restored = LogEntry.from_payload(payload)

        assert payload["tags"] == "a\nb"
        assert payload["context"]["limits"]["queries"]["maximum"] == 100
        assert restored.tags == ("a", "b")
        assert restored.context.user_id == "u1"
        assert restored.context.is_trigger is True
        assert restored.timestamp == entry.timestamp

    def test_context_snapshot_round_trip_defaults(self):
        assert ContextSnapshot.from_dict(None) == ContextSnapshot()
