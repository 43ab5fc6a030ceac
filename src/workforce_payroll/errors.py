"""Exception hierarchy for payroll operations."""

from __future__ import annotations

from uuid import UUID


class PayrollError(Exception):
    """Base class for all payroll engine errors."""


class ValidationError(PayrollError):
    """Raised when input is malformed; no computation or write has happened."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class NotFoundError(PayrollError):
    """Raised when a referenced period, entry, staff or record does not exist."""

    def __init__(self, entity_type: str, entity_id: UUID | str | int):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} '{entity_id}' not found")


class ImmutableStateError(PayrollError):
    """Raised when a mutating call targets a finalized payroll period."""

    def __init__(self, period_id: UUID, operation: str):
        self.period_id = period_id
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: payroll period {period_id} is finalized"
        )


class ConcurrencyConflictError(PayrollError):
    """Raised when a commit observes stale state. Retry after a fresh read."""

    def __init__(self, entity_type: str, entity_id: UUID, reason: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        msg = f"Concurrent modification of {entity_type} {entity_id}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ComputationError(PayrollError):
    """Raised for degenerate calculation inputs.

    The period service catches this per entry and flags the entry for
    manual review instead of aborting the whole generation.
    """


class PayrollPermissionError(PayrollError, PermissionError):
    """Raised when an operation is not permitted in the current state or plan."""
