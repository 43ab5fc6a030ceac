"""Locum payout API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path

from workforce_payroll.api.dependencies import Actor, AppSettings, DbSession, OrganizationId
from workforce_payroll.api.schemas import (
    ErrorResponse,
    LocumPayoutReportResponse,
    LocumPayoutResponse,
    LocumStatusRequest,
)
from workforce_payroll.calculators.types import LocumStatus
from workforce_payroll.errors import NotFoundError
from workforce_payroll.services.locum_service import LocumPayoutEntry, LocumPayoutTracker
from workforce_payroll.services.period_service import PayrollPeriodService

router = APIRouter(tags=["locums"])


def _payout_response(payout: LocumPayoutEntry) -> LocumPayoutResponse:
    return LocumPayoutResponse(
        assignment_id=payout.assignment_id,
        shift_id=payout.shift_id,
        locum_name=payout.locum_name,
        shift_date=payout.shift_date,
        shift_time=payout.shift_time,
        role=payout.role,
        location=payout.location,
        rate_cents=payout.rate_cents,
        status=payout.status.value,
        payable_cents=payout.payable_cents,
    )


@router.get(
    "/periods/{period_id}/locums",
    response_model=LocumPayoutReportResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_locum_payouts(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> LocumPayoutReportResponse:
    """Locum payouts for shifts inside a period's date range."""
    await PayrollPeriodService(db, settings).get_period(period_id, organization_id)
    report = await LocumPayoutTracker(db, settings).payouts_for_period(period_id)
    return LocumPayoutReportResponse(
        start_date=report.start_date,
        end_date=report.end_date,
        payouts=[_payout_response(p) for p in report.payouts],
        total_payable_cents=report.total_payable_cents,
        worked_count=report.count(LocumStatus.WORKED),
        scheduled_count=report.count(LocumStatus.SCHEDULED),
        no_show_count=report.count(LocumStatus.NO_SHOW),
    )


@router.put(
    "/locums/{assignment_id}/status",
    response_model=LocumPayoutResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def record_locum_status(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    assignment_id: Annotated[UUID, Path()],
    payload: LocumStatusRequest,
) -> LocumPayoutResponse:
    """Mark a locum shift Worked, No-show, or back to Scheduled."""
    tracker = LocumPayoutTracker(db, settings)
    if await tracker.organization_of(assignment_id) != organization_id:
        raise NotFoundError("locum assignment", assignment_id)
    payout = await tracker.record_status(assignment_id, payload.status, actor)
    await db.commit()
    return _payout_response(payout)
