"""Payroll period API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from workforce_payroll.api.dependencies import (
    Actor,
    AppSettings,
    Capabilities,
    DbSession,
    OrganizationId,
)
from workforce_payroll.api.schemas import (
    EntryResponse,
    ErrorResponse,
    FinalizeRequest,
    GenerationResponse,
    MarkAllPaidResponse,
    PeriodCreate,
    PeriodListResponse,
    PeriodResponse,
    PeriodSummaryResponse,
)
from workforce_payroll.services.export_service import ExportService
from workforce_payroll.services.period_service import PayrollPeriodService

router = APIRouter(prefix="/periods", tags=["periods"])

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


# ============================================================================
# Period CRUD
# ============================================================================


@router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def create_period(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    capabilities: Capabilities,
    settings: AppSettings,
    payload: PeriodCreate,
) -> PeriodResponse:
    """Create a new payroll period in draft status."""
    service = PayrollPeriodService(db, settings, capabilities)
    period = await service.create_period(
        organization_id, payload.name, payload.start_date, payload.end_date, actor
    )
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.get("", response_model=PeriodListResponse)
async def list_periods(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    include_archived: Annotated[bool, Query()] = False,
) -> PeriodListResponse:
    """List periods for an organization, newest first."""
    service = PayrollPeriodService(db, settings)
    periods = await service.list_periods(organization_id, include_archived)
    return PeriodListResponse(
        items=[PeriodResponse.model_validate(p) for p in periods],
        total=len(periods),
    )


@router.get(
    "/{period_id}",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_period(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    service = PayrollPeriodService(db, settings)
    period = await service.get_period(period_id, organization_id)
    return PeriodResponse.model_validate(period)


# ============================================================================
# Lifecycle
# ============================================================================


@router.post(
    "/{period_id}/generate",
    response_model=GenerationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def generate_entries(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    capabilities: Capabilities,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> GenerationResponse:
    """Compute (or recompute) entries for every eligible staff member."""
    service = PayrollPeriodService(db, settings, capabilities)
    await service.get_period(period_id, organization_id)
    result = await service.generate_entries(period_id, actor)
    await db.commit()
    return GenerationResponse.model_validate(result)


@router.post(
    "/{period_id}/finalize",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_period(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
    payload: FinalizeRequest | None = None,
) -> PeriodResponse:
    """Lock a draft period. Irreversible."""
    service = PayrollPeriodService(db, settings)
    await service.get_period(period_id, organization_id)
    expected = payload.expected_version if payload else None
    period = await service.finalize(period_id, actor, expected_version=expected)
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.post(
    "/{period_id}/archive",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def archive_period(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    service = PayrollPeriodService(db, settings)
    await service.get_period(period_id, organization_id)
    period = await service.archive(period_id, actor)
    await db.commit()
    return PeriodResponse.model_validate(period)


@router.post(
    "/{period_id}/unarchive",
    response_model=PeriodResponse,
    responses={404: {"model": ErrorResponse}},
)
async def unarchive_period(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> PeriodResponse:
    service = PayrollPeriodService(db, settings)
    await service.get_period(period_id, organization_id)
    period = await service.unarchive(period_id, actor)
    await db.commit()
    return PeriodResponse.model_validate(period)


# ============================================================================
# Entries and totals
# ============================================================================


@router.get(
    "/{period_id}/entries",
    response_model=list[EntryResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_entries(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> list[EntryResponse]:
    service = PayrollPeriodService(db, settings)
    await service.get_period(period_id, organization_id)
    entries = await service.get_entries(period_id)
    return [EntryResponse.model_validate(e) for e in entries]


@router.get(
    "/{period_id}/summary",
    response_model=PeriodSummaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def period_summary(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> PeriodSummaryResponse:
    service = PayrollPeriodService(db, settings)
    await service.get_period(period_id, organization_id)
    summary = await service.period_summary(period_id)
    return PeriodSummaryResponse.model_validate(summary)


@router.post(
    "/{period_id}/mark-all-paid",
    response_model=MarkAllPaidResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_all_paid(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    capabilities: Capabilities,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> MarkAllPaidResponse:
    service = PayrollPeriodService(db, settings, capabilities)
    await service.get_period(period_id, organization_id)
    count = await service.mark_all_paid(period_id, actor)
    await db.commit()
    return MarkAllPaidResponse(period_id=period_id, marked=count)


# ============================================================================
# Exports
# ============================================================================


@router.get(
    "/{period_id}/export.csv",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def export_period(
    db: DbSession,
    organization_id: OrganizationId,
    capabilities: Capabilities,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> Response:
    """Export a finalized period as CSV."""
    await PayrollPeriodService(db, settings).get_period(period_id, organization_id)
    content = await ExportService(db, settings, capabilities).export_csv(period_id)
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="payroll-{period_id}.csv"'},
    )


@router.get(
    "/{period_id}/locums/export.csv",
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def export_period_locums(
    db: DbSession,
    organization_id: OrganizationId,
    capabilities: Capabilities,
    settings: AppSettings,
    period_id: Annotated[UUID, Path()],
) -> Response:
    await PayrollPeriodService(db, settings).get_period(period_id, organization_id)
    content = await ExportService(db, settings, capabilities).export_locums_csv(period_id)
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="locums-{period_id}.csv"'},
    )
