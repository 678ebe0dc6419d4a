"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from opsdesk.app.api.v1.endpoints import (
    auth, admin,
    finance, finance_accounts, finance_transactions,
    operations, moderation,
    users, technicians
)

router = APIRouter()

router.include_router(auth.router)
router.include_router(admin.router)

# Finance
router.include_router(finance.router)
router.include_router(finance_accounts.router)
router.include_router(finance_transactions.router)

# Operations and moderation
router.include_router(operations.router)
router.include_router(moderation.router)

# Account management
router.include_router(users.router)
router.include_router(technicians.router)
