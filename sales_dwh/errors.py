"""Load errors raised by the warehouse ETL."""

from dataclasses import dataclass
from typing import Any, List, Optional


@dataclass
class RowFailure:
    """One staging row that failed a check."""
    row: Any  # staging frame index
    field: str
    value: Any
    reason: str

    def to_dict(self) -> dict:
        return {
            'row': self.row,
            'field': self.field,
            'value': None if self.value is None else str(self.value),
            'reason': self.reason,
        }


class LoadError(Exception):
    """Base class for warehouse load errors."""
    pass


class ValidationError(LoadError):
    """Raised when staging rows have missing natural keys or uncastable measures."""

    def __init__(self, message: str, failures: Optional[List[RowFailure]] = None):
        self.failures = list(failures or [])
        if self.failures:
            message = f"{message} ({len(self.failures)} failing rows)"
        super().__init__(message)


class ReferentialIntegrityError(LoadError):
    """Raised when a fact row references a dimension key that does not exist."""

    def __init__(self, message: str, missing: Optional[List[Any]] = None):
        self.missing = list(missing or [])
        super().__init__(message)


class LoadTimeoutError(LoadError):
    """Raised when a load exceeds the caller-supplied timeout."""
    pass


class ConcurrentLoadError(LoadError):
    """Raised when another load already holds the writer lock."""
    pass


class TransactionAbortError(LoadError):
    """Raised after the load transaction was rolled back."""

    def __init__(self, phase: str, cause: BaseException):
        self.phase = phase
        self.cause = cause
        super().__init__(f"Load aborted during {phase}: {cause}")

    @property
    def failures(self) -> List[RowFailure]:
        return list(getattr(self.cause, 'failures', []))
