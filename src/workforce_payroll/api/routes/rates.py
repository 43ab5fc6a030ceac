"""Statutory rates API endpoints."""

from fastapi import APIRouter, status

from workforce_payroll.api.dependencies import Actor, DbSession
from workforce_payroll.api.schemas import (
    DeductionPreviewRequest,
    DeductionPreviewResponse,
    ErrorResponse,
    RulesPublishRequest,
    RulesVersionResponse,
)
from workforce_payroll.services.rates_service import StatutoryRatesService

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("/current", response_model=RulesVersionResponse)
async def get_current_rules(db: DbSession) -> RulesVersionResponse:
    """Active statutory rules; seeds the Kenya defaults on first use."""
    rules = await StatutoryRatesService(db).get_current_rules()
    await db.commit()
    return RulesVersionResponse.model_validate(rules)


@router.get("", response_model=list[RulesVersionResponse])
async def list_rules_history(db: DbSession) -> list[RulesVersionResponse]:
    history = await StatutoryRatesService(db).get_history()
    return [RulesVersionResponse.model_validate(r) for r in history]


@router.post(
    "",
    response_model=RulesVersionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={422: {"model": ErrorResponse}},
)
async def publish_rules(
    db: DbSession,
    actor: Actor,
    payload: RulesPublishRequest,
) -> RulesVersionResponse:
    """Publish a new rules version; the previous one is archived."""
    rules = await StatutoryRatesService(db).publish_rules(
        payload.updates,
        actor=actor,
        effective_from=payload.effective_from,
        notes=payload.notes,
    )
    await db.commit()
    return RulesVersionResponse.model_validate(rules)


@router.post(
    "/revert",
    response_model=RulesVersionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def revert_rules(db: DbSession, actor: Actor) -> RulesVersionResponse:
    rules = await StatutoryRatesService(db).revert_to_defaults(actor)
    await db.commit()
    return RulesVersionResponse.model_validate(rules)


@router.post(
    "/preview",
    response_model=DeductionPreviewResponse,
    responses={422: {"model": ErrorResponse}},
)
async def preview_deductions(
    db: DbSession,
    payload: DeductionPreviewRequest,
) -> DeductionPreviewResponse:
    """Deductions for a salary under the active rules, without persisting anything."""
    result = await StatutoryRatesService(db).preview_deductions(
        payload.monthly_salary_cents, payload.allowances_cents
    )
    await db.commit()
    details = result.details
    return DeductionPreviewResponse(
        gross_cents=result.gross_cents,
        paye_cents=details.paye_cents,
        nssf_employee_cents=details.nssf_employee_cents,
        nssf_employer_cents=details.nssf_employer_cents,
        shif_cents=details.shif_cents,
        housing_levy_employee_cents=details.housing_levy_employee_cents,
        housing_levy_employer_cents=details.housing_levy_employer_cents,
        total_cents=details.total_cents,
        net_pay_cents=result.net_pay_cents,
        net_clamped=result.net_clamped,
    )
