"""Payroll entry API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, Path, status

from workforce_payroll.api.dependencies import (
    Actor,
    AppSettings,
    Capabilities,
    DbSession,
    OrganizationId,
)
from workforce_payroll.api.schemas import (
    AllowanceRequest,
    EntryResponse,
    ErrorResponse,
    PaidToggleResponse,
    PayslipResponse,
)
from workforce_payroll.models import PayrollEntry
from workforce_payroll.services.export_service import ExportService
from workforce_payroll.services.period_service import PayrollPeriodService

router = APIRouter(prefix="/entries", tags=["entries"])


async def _owned_entry(
    service: PayrollPeriodService, entry_id: UUID, organization_id: UUID
) -> PayrollEntry:
    """Load an entry, treating entries of other organizations as missing."""
    entry = await service.get_entry(entry_id)
    await service.get_period(entry.period_id, organization_id)
    return entry


@router.get(
    "/{entry_id}",
    response_model=EntryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_entry(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
) -> EntryResponse:
    service = PayrollPeriodService(db, settings)
    entry = await _owned_entry(service, entry_id, organization_id)
    return EntryResponse.model_validate(entry)


# ============================================================================
# Allowances
# ============================================================================


@router.post(
    "/{entry_id}/allowances",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_allowance(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
    payload: AllowanceRequest,
) -> EntryResponse:
    service = PayrollPeriodService(db, settings)
    await _owned_entry(service, entry_id, organization_id)
    entry = await service.add_allowance(entry_id, payload.amount_cents, payload.notes, actor)
    await db.commit()
    return EntryResponse.model_validate(entry)


@router.put(
    "/{entry_id}/allowances/{index}",
    response_model=EntryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def edit_allowance(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
    index: Annotated[int, Path()],
    payload: AllowanceRequest,
) -> EntryResponse:
    service = PayrollPeriodService(db, settings)
    await _owned_entry(service, entry_id, organization_id)
    entry = await service.edit_allowance(
        entry_id, index, payload.amount_cents, payload.notes, actor
    )
    await db.commit()
    return EntryResponse.model_validate(entry)


@router.delete(
    "/{entry_id}/allowances/{index}",
    response_model=EntryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_allowance(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
    index: Annotated[int, Path()],
) -> EntryResponse:
    service = PayrollPeriodService(db, settings)
    await _owned_entry(service, entry_id, organization_id)
    entry = await service.delete_allowance(entry_id, index, actor)
    await db.commit()
    return EntryResponse.model_validate(entry)


# ============================================================================
# Paid toggle
# ============================================================================


@router.post(
    "/{entry_id}/paid",
    response_model=PaidToggleResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_paid(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    capabilities: Capabilities,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
) -> PaidToggleResponse:
    service = PayrollPeriodService(db, settings, capabilities)
    await _owned_entry(service, entry_id, organization_id)
    audit = await service.mark_paid(entry_id, actor)
    await db.commit()
    return PaidToggleResponse.model_validate(audit)


@router.delete(
    "/{entry_id}/paid",
    response_model=PaidToggleResponse,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def unmark_paid(
    db: DbSession,
    organization_id: OrganizationId,
    actor: Actor,
    capabilities: Capabilities,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
) -> PaidToggleResponse:
    service = PayrollPeriodService(db, settings, capabilities)
    await _owned_entry(service, entry_id, organization_id)
    audit = await service.unmark_paid(entry_id, actor)
    await db.commit()
    return PaidToggleResponse.model_validate(audit)


# ============================================================================
# Payslip
# ============================================================================


@router.get(
    "/{entry_id}/payslip",
    response_model=PayslipResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_payslip(
    db: DbSession,
    organization_id: OrganizationId,
    settings: AppSettings,
    entry_id: Annotated[UUID, Path()],
    x_staff_id: Annotated[UUID | None, Header()] = None,
) -> PayslipResponse:
    """Employee payslip view; the entry is withheld until the visibility delay passes."""
    await _owned_entry(PayrollPeriodService(db, settings), entry_id, organization_id)
    view = await ExportService(db, settings).get_payslip(entry_id, staff_id=x_staff_id)
    return PayslipResponse.model_validate(view)
