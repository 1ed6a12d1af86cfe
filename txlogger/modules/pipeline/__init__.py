"""
Entry pipeline: severity filtering, entry building, per-transaction
buffering and flushing to the asynchronous channel or storage.
"""

from txlogger.modules.pipeline.buffer import TransactionBuffer
from txlogger.modules.pipeline.builder import EntryBuilder
from txlogger.modules.pipeline.context import (
    ContextProvider,
    ContextSnapshot,
    LimitUsage,
    ProcessContextProvider,
    StaticContextProvider,
)
from txlogger.modules.pipeline.entry import (
    DebugEntryRequest,
    ErrorPayload,
    ExceptionEntryRequest,
    FieldLimits,
    LogEntry,
)
from txlogger.modules.pipeline.pipeline import (
    FLUSH_SUPPRESSED_MESSAGE,
    LogPipeline,
    PipelineFactory,
    current_pipeline,
)
from txlogger.modules.pipeline.publisher import LOG_ENTRIES_PUBLISHED, FlushChannel, Publisher
from txlogger.modules.pipeline.settings import (
    ConfigSettingsProvider,
    InMemorySettingsProvider,
    LoggerSettings,
    SettingsProvider,
)
from txlogger.modules.pipeline.severity import EntryKind, OriginType, Severity

__all__ = [
    "ConfigSettingsProvider",
    "ContextProvider",
    "ContextSnapshot",
    "DebugEntryRequest",
    "EntryBuilder",
    "EntryKind",
    "ErrorPayload",
    "ExceptionEntryRequest",
    "FLUSH_SUPPRESSED_MESSAGE",
    "FieldLimits",
    "FlushChannel",
    "InMemorySettingsProvider",
    "LOG_ENTRIES_PUBLISHED",
    "LimitUsage",
    "LogEntry",
    "LogPipeline",
    "LoggerSettings",
    "OriginType",
    "PipelineFactory",
    "ProcessContextProvider",
    "Publisher",
    "SettingsProvider",
    "Severity",
    "StaticContextProvider",
    "TransactionBuffer",
    "current_pipeline",
]
