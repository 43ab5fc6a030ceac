"""Payroll period state machine with mutation validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from workforce_payroll.errors import ImmutableStateError

if TYPE_CHECKING:
    from workforce_payroll.models import PayrollPeriod


class PeriodStatus(str, Enum):
    """Payroll period status values."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class PeriodOperation(str, Enum):
    """Operations checked against the period state."""

    GENERATE_ENTRIES = "generate entries"
    ADD_ALLOWANCE = "add allowance"
    EDIT_ALLOWANCE = "edit allowance"
    DELETE_ALLOWANCE = "delete allowance"
    MARK_PAID = "mark paid"
    UNMARK_PAID = "unmark paid"
    MARK_ALL_PAID = "mark all paid"
    FINALIZE = "finalize"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"
    EXPORT = "export"


class PeriodStateMachine:
    """State machine for payroll period status.

    Allowed transitions:
    - draft → finalized (one-way)

    The archived flag is orthogonal: archive and unarchive are allowed in
    every state and never change the status.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PeriodStatus.DRAFT: [PeriodStatus.FINALIZED],
        PeriodStatus.FINALIZED: [],  # Terminal state
    }

    # Operations allowed only while draft
    DRAFT_ONLY = {
        PeriodOperation.GENERATE_ENTRIES,
        PeriodOperation.ADD_ALLOWANCE,
        PeriodOperation.EDIT_ALLOWANCE,
        PeriodOperation.DELETE_ALLOWANCE,
        PeriodOperation.MARK_PAID,
        PeriodOperation.UNMARK_PAID,
        PeriodOperation.MARK_ALL_PAID,
    }

    # Operations allowed only once finalized
    FINALIZED_ONLY = {
        PeriodOperation.EXPORT,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def can_modify(cls, status: str) -> bool:
        """Check if entries and allowances can be modified."""
        return status == PeriodStatus.DRAFT

    @classmethod
    def can_finalize(cls, status: str) -> bool:
        return cls.can_transition(status, PeriodStatus.FINALIZED)

    @classmethod
    def is_allowed(cls, status: str, operation: PeriodOperation) -> bool:
        if operation == PeriodOperation.FINALIZE:
            return cls.can_finalize(status)
        if operation in cls.DRAFT_ONLY:
            return status == PeriodStatus.DRAFT
        if operation in cls.FINALIZED_ONLY:
            return status == PeriodStatus.FINALIZED
        return True

    @classmethod
    def validate_mutation(cls, period: PayrollPeriod, operation: PeriodOperation) -> None:
        """Raise ImmutableStateError if a draft-only operation targets a finalized period."""
        if operation in cls.DRAFT_ONLY and not cls.can_modify(period.status):
            raise ImmutableStateError(period.period_id, operation.value)
