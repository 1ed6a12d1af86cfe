from txlogger.core.database.service import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    DatabaseService,
)

__all__ = ["DatabaseInitializationError", "DatabaseNotInitializedError", "DatabaseService"]
