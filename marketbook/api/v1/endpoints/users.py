"""
User endpoints - registration, login, profile, notifications and the admin views.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from marketbook.config import get_settings
from marketbook.core.dependencies import (
    AdminUser,
    CurrentUser,
    get_admin_service,
    get_identity_service,
    get_notification_service,
)
from marketbook.schemas.audit import AuditLogPage
from marketbook.schemas.base import MessageResponse
from marketbook.schemas.notification import NotificationResponse
from marketbook.schemas.stats import DashboardStats
from marketbook.schemas.user import (
    AdminCreate,
    AuthResponse,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    UserCreate,
    UserResponse,
)
from marketbook.services.admin_service import AdminService
from marketbook.services.identity_service import IdentityService
from marketbook.services.notification_service import NotificationService

router = APIRouter()
settings = get_settings()

Identity = Annotated[IdentityService, Depends(get_identity_service)]
Notifications = Annotated[NotificationService, Depends(get_notification_service)]
Admin = Annotated[AdminService, Depends(get_admin_service)]


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, svc: Identity):
    """Create a regular account and return it with a session token."""
    return await svc.register(data)


@router.post("/register-admin", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_admin(data: AdminCreate, svc: Identity):
    """Create an admin account; requires the enrollment code."""
    return await svc.register_admin(data)


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, svc: Identity):
    return await svc.authenticate(data)


@router.post("/logout", response_model=MessageResponse)
async def logout(user: CurrentUser, svc: Identity):
    await svc.logout(user)
    return MessageResponse(message="Logged out")


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(user: CurrentUser, svc: Identity):
    return await svc.get_profile(user.id)


@router.put("/profile", response_model=AuthResponse)
async def update_profile(data: ProfileUpdate, user: CurrentUser, svc: Identity):
    """Self-only profile update; returns a fresh token."""
    return await svc.update_profile(user, data)


@router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(user: CurrentUser, svc: Notifications):
    return await svc.list_for_user(user)


@router.put("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: int, user: CurrentUser, svc: Notifications):
    return await svc.mark_read(user, notification_id)


@router.get("/audit-logs", response_model=AuditLogPage)
async def audit_logs(
    admin: AdminUser,
    svc: Admin,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    return await svc.audit_logs(page, limit)


@router.get("/dashboard-stats", response_model=DashboardStats)
async def dashboard_stats(admin: AdminUser, svc: Admin):
    return await svc.dashboard_stats()


@router.get("", response_model=list[UserResponse])
async def list_users(admin: AdminUser, svc: Identity):
    return await svc.list_users()
