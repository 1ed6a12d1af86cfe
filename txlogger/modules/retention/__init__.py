from txlogger.modules.retention.purge_job import (
    ChunkResult,
    ExpiredLogCursor,
    LogPurgeJob,
    PurgeJobRunner,
    PurgeJobState,
)

__all__ = ["ChunkResult", "ExpiredLogCursor", "LogPurgeJob", "PurgeJobRunner", "PurgeJobState"]
