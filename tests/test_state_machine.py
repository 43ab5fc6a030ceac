"""Tests for payroll period state machine and capabilities."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from workforce_payroll.errors import ImmutableStateError, PayrollPermissionError
from workforce_payroll.services.capabilities import PayrollCapabilities
from workforce_payroll.services.state_machine import (
    PeriodOperation,
    PeriodStateMachine,
    PeriodStatus,
)


def period_in(status: PeriodStatus):
    return SimpleNamespace(period_id=uuid4(), status=status.value)


class TestPeriodStateMachine:
    """Test state machine transitions."""

    def test_valid_transitions(self):
        # draft → finalized
        assert PeriodStateMachine.can_transition("draft", "finalized") is True

    def test_invalid_transitions(self):
        # Finalized is terminal
        assert PeriodStateMachine.can_transition("finalized", "draft") is False
        assert PeriodStateMachine.can_transition("finalized", "finalized") is False
        assert PeriodStateMachine.can_transition("unknown", "finalized") is False

    def test_can_modify(self):
        assert PeriodStateMachine.can_modify("draft") is True
        assert PeriodStateMachine.can_modify("finalized") is False

    def test_finalize_only_from_draft(self):
        assert PeriodStateMachine.is_allowed("draft", PeriodOperation.FINALIZE) is True
        assert PeriodStateMachine.is_allowed("finalized", PeriodOperation.FINALIZE) is False

    def test_export_only_when_finalized(self):
        assert PeriodStateMachine.is_allowed("draft", PeriodOperation.EXPORT) is False
        assert PeriodStateMachine.is_allowed("finalized", PeriodOperation.EXPORT) is True

    @pytest.mark.parametrize("status", ["draft", "finalized"])
    def test_archive_allowed_in_any_state(self, status):
        assert PeriodStateMachine.is_allowed(status, PeriodOperation.ARCHIVE) is True
        assert PeriodStateMachine.is_allowed(status, PeriodOperation.UNARCHIVE) is True

    @pytest.mark.parametrize("operation", sorted(PeriodStateMachine.DRAFT_ONLY))
    def test_draft_only_operations_rejected_when_finalized(self, operation):
        period = period_in(PeriodStatus.FINALIZED)

        with pytest.raises(ImmutableStateError) as exc_info:
            PeriodStateMachine.validate_mutation(period, operation)

        assert exc_info.value.period_id == period.period_id
        assert exc_info.value.operation == operation.value

    @pytest.mark.parametrize("operation", sorted(PeriodStateMachine.DRAFT_ONLY))
    def test_draft_only_operations_allowed_in_draft(self, operation):
        PeriodStateMachine.validate_mutation(period_in(PeriodStatus.DRAFT), operation)

    def test_archive_never_raises(self):
        PeriodStateMachine.validate_mutation(
            period_in(PeriodStatus.FINALIZED), PeriodOperation.ARCHIVE
        )


class TestPayrollCapabilities:
    """Policy flags computed once from organization state."""

    def test_full_access(self):
        caps = PayrollCapabilities.full_access()

        assert caps.can_preview and caps.can_payout and caps.can_export and caps.can_invoice

    @pytest.mark.parametrize("status", ["active", "trial", "ACTIVE"])
    def test_verified_in_good_standing(self, status):
        caps = PayrollCapabilities.from_organization(status, is_verified=True)

        assert caps == PayrollCapabilities.full_access()

    def test_unverified_may_only_preview(self):
        caps = PayrollCapabilities.from_organization("trial", is_verified=False)

        assert caps.can_preview is True
        assert caps.can_payout is False
        assert caps.can_export is False
        assert caps.can_invoice is False

    def test_expired_subscription_denies_everything(self):
        caps = PayrollCapabilities.from_organization("expired", is_verified=True)

        assert caps == PayrollCapabilities(False, False, False, False)

    def test_require_raises_permission_error(self):
        caps = PayrollCapabilities(can_export=False)

        caps.require("can_preview")
        with pytest.raises(PermissionError):
            caps.require("can_export")
        with pytest.raises(PayrollPermissionError, match="export"):
            caps.require("can_export")
