"""
txlogger: transaction-scoped structured logging.

Entries are filtered, enriched with execution context and buffered per
logical transaction, then flushed in one batch to an asynchronous channel
that persists them. A retention job purges expired records.
"""

from txlogger.modules.adapters import ComponentLogAdapter, FlowLogEntry, Logger, WorkflowLogAdapter
from txlogger.modules.pipeline import (
    DebugEntryRequest,
    ExceptionEntryRequest,
    FlushChannel,
    LogPipeline,
    PipelineFactory,
    Severity,
)

__version__ = "0.1.0"

__all__ = [
    "ComponentLogAdapter",
    "DebugEntryRequest",
    "ExceptionEntryRequest",
    "FlowLogEntry",
    "FlushChannel",
    "LogPipeline",
    "Logger",
    "PipelineFactory",
    "Severity",
    "WorkflowLogAdapter",
    "__version__",
]
