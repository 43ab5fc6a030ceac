"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from workforce_payroll.config import Settings, get_settings
from workforce_payroll.database import init_db
from workforce_payroll.services.capabilities import PayrollCapabilities


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency. Routes commit explicitly."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_organization_id(
    x_organization_id: Annotated[str | None, Header()] = None
) -> UUID:
    """Extract organization ID from header."""
    if not x_organization_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-ID header is required",
        )
    try:
        return UUID(x_organization_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid X-Organization-ID format",
        )


async def get_actor(x_actor_id: Annotated[str | None, Header()] = None) -> str:
    """Acting user, as recorded in audit stamps."""
    return x_actor_id or "api"


async def get_capabilities(
    x_subscription_status: Annotated[str | None, Header()] = None,
    x_organization_verified: Annotated[str | None, Header()] = None,
) -> PayrollCapabilities:
    """Capabilities forwarded by the gateway; full access when absent."""
    if x_subscription_status is None:
        return PayrollCapabilities.full_access()
    return PayrollCapabilities.from_organization(
        subscription_status=x_subscription_status,
        is_verified=(x_organization_verified or "").lower() == "true",
    )


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
OrganizationId = Annotated[UUID, Depends(get_organization_id)]
Actor = Annotated[str, Depends(get_actor)]
Capabilities = Annotated[PayrollCapabilities, Depends(get_capabilities)]
AppSettings = Annotated[Settings, Depends(get_settings)]
