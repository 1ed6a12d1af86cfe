from txlogger.modules.storage.consumer import LogEntryConsumer
from txlogger.modules.storage.models import Base, LogEntryRecord, LogRecord, compute_retention_date
from txlogger.modules.storage.repository import LogRepository

__all__ = [
    "Base",
    "LogEntryConsumer",
    "LogEntryRecord",
    "LogRecord",
    "LogRepository",
    "compute_retention_date",
]
