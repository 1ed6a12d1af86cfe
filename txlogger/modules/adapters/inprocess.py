"""
In-process adapter: the `Logger` that application code calls directly.

    log = Logger()
    async with factory.transaction():
        await log.info("Order placed", linked_record_id=order.id, tags=["orders"])
        try:
            ...
        except ValueError as exc:
            await log.exception(exc)

The origin location is the caller's explicit `origin=` when given. Without
one, the nearest stack frame outside the txlogger package is used, formatted
as ``module.function:lineno``.
"""

from __future__ import annotations

import sys
from types import FrameType
from typing import Iterable, Optional, Union

from txlogger.core.exceptions import PipelineNotBoundError
from txlogger.modules.pipeline.entry import DebugEntryRequest, ErrorPayload, ExceptionEntryRequest
from txlogger.modules.pipeline.pipeline import LogPipeline, current_pipeline
from txlogger.modules.pipeline.publisher import FlushChannel
from txlogger.modules.pipeline.severity import OriginType, Severity

_PACKAGE = "txlogger"


def _is_internal(frame: FrameType) -> bool:
    module = frame.f_globals.get("__name__", "")
    return module == _PACKAGE or module.startswith(_PACKAGE + ".")


def resolve_origin(start: Optional[FrameType] = None) -> Optional[str]:
    """Describe the nearest caller frame that is not txlogger's own code."""
    frame = start if start is not None else sys._getframe(1)
    while frame is not None and _is_internal(frame):
        frame = frame.f_back
    if frame is None:
        return None
    module = frame.f_globals.get("__name__", "?")
    return f"{module}.{frame.f_code.co_name}:{frame.f_lineno}"


class Logger:
    def __init__(self, pipeline: Optional[LogPipeline] = None) -> None:
        self._pipeline = pipeline

    @property
    def pipeline(self) -> LogPipeline:
        pipeline = self._pipeline or current_pipeline()
        if pipeline is None:
            raise PipelineNotBoundError()
        return pipeline

    async def _log(
        self,
        severity: Severity,
        message: str,
        linked_record_id: Optional[str],
        tags: Optional[Iterable[str]],
        origin: Optional[str],
    ) -> Optional[str]:
        return await self.pipeline.record(
            DebugEntryRequest(
                message=message,
                origin_type=OriginType.APEX,
                origin_location=origin or resolve_origin(),
                severity=severity,
                linked_record_id=linked_record_id,
                tags=tuple(tags or ()),
            )
        )

    async def error(self, message: str, *, linked_record_id: Optional[str] = None,
                    tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.ERROR, message, linked_record_id, tags, origin)

    async def warn(self, message: str, *, linked_record_id: Optional[str] = None,
                   tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.WARN, message, linked_record_id, tags, origin)

    async def info(self, message: str, *, linked_record_id: Optional[str] = None,
                   tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.INFO, message, linked_record_id, tags, origin)

    async def debug(self, message: str, *, linked_record_id: Optional[str] = None,
                    tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.DEBUG, message, linked_record_id, tags, origin)

    async def fine(self, message: str, *, linked_record_id: Optional[str] = None,
                   tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.FINE, message, linked_record_id, tags, origin)

    async def finer(self, message: str, *, linked_record_id: Optional[str] = None,
                    tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.FINER, message, linked_record_id, tags, origin)

    async def finest(self, message: str, *, linked_record_id: Optional[str] = None,
                     tags: Optional[Iterable[str]] = None, origin: Optional[str] = None) -> Optional[str]:
        return await self._log(Severity.FINEST, message, linked_record_id, tags, origin)

    async def exception(
        self,
        message_or_error: Union[str, BaseException],
        error: Optional[Union[BaseException, ErrorPayload]] = None,
        *,
        linked_record_id: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        origin: Optional[str] = None,
    ) -> Optional[str]:
        """
        Record an exception entry (always ERROR).

        The error is, in order: an exception passed first, `error=`, or the
        exception currently being handled. A bare message with none of those
        becomes an error of type "Error".
        """
        if isinstance(message_or_error, BaseException):
            error = message_or_error
        if error is None:
            error = sys.exc_info()[1]
        if error is None:
            error = ErrorPayload(type_name="Error", message=str(message_or_error))

        return await self.pipeline.record(
            ExceptionEntryRequest.of(
                error,
                OriginType.APEX,
                origin_location=origin or resolve_origin(),
                linked_record_id=linked_record_id,
                tags=tuple(tags or ()),
            )
        )

    async def flush(self, via: FlushChannel = FlushChannel.ASYNC_CHANNEL) -> str:
        return await self.pipeline.flush(via)
