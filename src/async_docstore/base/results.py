# src/async_docstore/base/results.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class FailureReason(Enum):
    """Classified reasons a write or update can fail."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    INVALID_ARGUMENT = "invalid_argument"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a write or update.

    Truthy exactly when the operation succeeded, so callers that only check
    `if await gateway.write(...)` keep working. Callers that need detail can
    inspect `reason` and `error`.
    """

    success: bool
    reason: Optional[FailureReason] = None
    error: Optional[BaseException] = None

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls) -> "WriteResult":
        return cls(success=True)

    @classmethod
    def failed(
        cls, reason: FailureReason, error: Optional[BaseException] = None
    ) -> "WriteResult":
        return cls(success=False, reason=reason, error=error)
