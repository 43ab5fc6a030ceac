"""API routes."""

from workforce_payroll.api.routes.entries import router as entries_router
from workforce_payroll.api.routes.health import router as health_router
from workforce_payroll.api.routes.locums import router as locums_router
from workforce_payroll.api.routes.periods import router as periods_router
from workforce_payroll.api.routes.rates import router as rates_router

__all__ = [
    "entries_router",
    "health_router",
    "locums_router",
    "periods_router",
    "rates_router",
]
