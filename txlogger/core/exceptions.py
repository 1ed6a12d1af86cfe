"""
Exception hierarchy for txlogger.

Policy outcomes (an entry dropped by the level filter or a storage toggle)
are not errors and never raise; they return None. Exceptions here cover
caller mistakes and misconfiguration only.

Each exception carries:
- `message`: human-readable description
- `details`: structured context for logging
- `error_code`: short, stable identifier for programmatic use
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TxLoggerError(Exception):
    """
    Base exception for all txlogger errors.

    Example:
        >>> raise TxLoggerError("Pipeline closed", {"transaction_id": "..."})
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(TxLoggerError):
    """A logger setting has a value that cannot be interpreted."""

    def __init__(self, key: str, value: Any, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{key}': {reason}",
            details={"config_key": key, "value": repr(value)},
            error_code="INVALID_CONFIG",
        )


class InvalidLogPayloadError(TxLoggerError):
    """
    Adapter input could not be parsed into log entries.

    Raised for malformed JSON or a payload of the wrong shape. This is an
    input error from the calling surface, not a filtering decision.
    """

    def __init__(self, reason: str, *, source: str, index: Optional[int] = None) -> None:
        details: Dict[str, Any] = {"source": source}
        if index is not None:
            details["index"] = index
        super().__init__(reason, details=details, error_code="INVALID_LOG_PAYLOAD")


class PipelineNotBoundError(TxLoggerError):
    """A Logger was used outside any transaction scope and had no explicit pipeline."""

    def __init__(self) -> None:
        super().__init__(
            "No log pipeline is bound to the current context; "
            "use PipelineFactory.transaction() or pass a pipeline explicitly",
            error_code="PIPELINE_NOT_BOUND",
        )
