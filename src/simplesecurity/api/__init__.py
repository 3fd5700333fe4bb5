"""API route aggregation.

All routers registered here get mounted in main.py.

Learn: The principal is resolved by middleware for every request, so
routers stay open here; routes that need a user or a role declare it
with require_authenticated / require_role.
"""

from fastapi import APIRouter

from simplesecurity.api.account import router as account_router
from simplesecurity.api.health import router as health_router
from simplesecurity.api.users import router as users_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(account_router, tags=["account"])
api_router.include_router(users_router, tags=["users"])
