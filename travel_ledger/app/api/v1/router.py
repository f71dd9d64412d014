"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from travel_ledger.app.api.v1.endpoints import accounts, vouchers, reports, settings, maintenance

router = APIRouter()

# Books
router.include_router(accounts.router)
router.include_router(vouchers.router)

# Statements
router.include_router(reports.router)

# Administration
router.include_router(settings.router)
router.include_router(maintenance.router)
