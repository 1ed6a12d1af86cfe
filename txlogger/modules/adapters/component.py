"""
Adapter for UI components.

Components post a JSON list of entries:

    [
      {"severity": "INFO", "message": "Saved", "origin": "accountCard.save",
       "linked_record_id": "001...", "tags": ["ui"]},
      {"message": "boom", "origin": "accountCard.load",
       "error": {"type": "TypeError", "message": "x is undefined", "stack": "..."}}
    ]

An `error` object turns the entry into an exception entry (ERROR severity,
message taken from the error). The adapter always flushes through the async
channel after the whole list, so the component never waits on storage.
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Optional, Sequence, Union

from txlogger.core.exceptions import InvalidLogPayloadError
from txlogger.core.logging.logger import get_logger
from txlogger.modules.pipeline.entry import DebugEntryRequest, EntryRequest, ErrorPayload, ExceptionEntryRequest
from txlogger.modules.pipeline.pipeline import LogPipeline
from txlogger.modules.pipeline.publisher import FlushChannel
from txlogger.modules.pipeline.severity import OriginType, Severity

logger = get_logger(__name__)

SOURCE = "ui_component"
ERROR_TEXT_FIELDS = ("type", "message", "stack")


class ComponentLogAdapter:
    def __init__(self, pipeline: LogPipeline) -> None:
        self._pipeline = pipeline

    @staticmethod
    def parse(serialized: Union[str, bytes, Sequence[Mapping[str, Any]]]) -> List[EntryRequest]:
        """
        Turn the component payload into requests.

        Raises
        ------
        InvalidLogPayloadError
            If the JSON is malformed or an item is not an object with a message
            or error.
        """
        if isinstance(serialized, (str, bytes)):
            try:
                items = json.loads(serialized)
            except json.JSONDecodeError as exc:
                raise InvalidLogPayloadError(f"Malformed JSON: {exc.msg}", source=SOURCE) from exc
        else:
            items = serialized

        if not isinstance(items, list):
            raise InvalidLogPayloadError("Expected a list of log entries", source=SOURCE)

        requests: List[EntryRequest] = []
        for index, item in enumerate(items):
            if not isinstance(item, Mapping):
                raise InvalidLogPayloadError("Log entry must be an object", source=SOURCE, index=index)

            tags = item.get("tags") or ()
            if isinstance(tags, str):
                tags = (tags,)
            elif not isinstance(tags, (list, tuple)):
                raise InvalidLogPayloadError("'tags' must be a list or a string", source=SOURCE, index=index)
            common: dict[str, Any] = {
                "origin_type": OriginType.UI_COMPONENT,
                "origin_location": item.get("origin"),
                "linked_record_id": item.get("linked_record_id"),
                "tags": tuple(str(tag) for tag in tags),
            }

            error = item.get("error")
            if error:
                if not isinstance(error, Mapping):
                    raise InvalidLogPayloadError("'error' must be an object", source=SOURCE, index=index)
                for key in ERROR_TEXT_FIELDS:
                    if error.get(key) is not None and not isinstance(error[key], str):
                        raise InvalidLogPayloadError(
                            f"'error.{key}' must be a string", source=SOURCE, index=index
                        )
                requests.append(
                    ExceptionEntryRequest(
                        error=ErrorPayload.from_mapping({"message": item.get("message"), **error}),
                        requested_severity=Severity.parse(item.get("severity")),
                        **common,
                    )
                )
            else:
                requests.append(
                    DebugEntryRequest(
                        message=str(item.get("message") or ""),
                        severity=Severity.parse(item.get("severity")),
                        **common,
                    )
                )
        return requests

    async def log_entries(
        self, serialized: Union[str, bytes, Sequence[Mapping[str, Any]]]
    ) -> List[Optional[str]]:
        requests = self.parse(serialized)
        results = [await self._pipeline.record(request) for request in requests]
        await self._pipeline.flush(FlushChannel.ASYNC_CHANNEL)

        logger.debug(
            "Component log entries processed",
            extra={"received": len(requests), "recorded": sum(1 for r in results if r is not None)},
        )
        return results
