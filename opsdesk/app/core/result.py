"""
Result envelope returned by store calls and domain operations.

Expected failures travel as `Result.failure(...)` instead of exceptions;
the HTTP layer calls `unwrap()` to turn them back into `AppException`s.
"""

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from opsdesk.app.core.exceptions import AppException

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    ok: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    exception: Optional[AppException] = field(default=None, repr=False, compare=False)

    @classmethod
    def success(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, exc: AppException) -> "Result[T]":
        return cls(ok=False, error=exc.message, error_code=exc.error_code, exception=exc)

    def unwrap(self) -> Optional[T]:
        """Return the data, or raise the stored exception."""
        if not self.ok:
            raise self.exception or AppException(self.error or "Operation failed", self.error_code or "ERR_UNKNOWN")
        return self.data
