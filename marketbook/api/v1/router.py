"""
API v1 router - aggregates all endpoint modules.
Only the identity routes sit behind the per-address rate limiter.
"""

from fastapi import APIRouter, Depends

from marketbook.api.v1.endpoints import health, items, users
from marketbook.core.dependencies import rate_limit_by_address

api_router = APIRouter(prefix="/v1")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(rate_limit_by_address)],
)
api_router.include_router(items.router, prefix="/items", tags=["items"])
