"""
FastAPI dependencies - injection for auth, request context, side channels,
services and rate limiting. Tests override the side-channel factories to
inject failing recorders or issuers.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketbook.cache.redis_client import hit_rate_limit
from marketbook.config import get_settings
from marketbook.core.errors import AuthenticationError, AuthorizationError, RateLimitError
from marketbook.core.security import decode_access_token
from marketbook.db.models import User
from marketbook.db.repositories import (
    AuditLogRepository,
    ItemRepository,
    NotificationRepository,
    UserRepository,
)
from marketbook.db.session import DbSession
from marketbook.media.storage import LocalMediaStore, get_media_store
from marketbook.services.admin_service import AdminService
from marketbook.services.audit_service import AuditContext, AuditRecorder
from marketbook.services.identity_service import IdentityService
from marketbook.services.item_service import ItemService
from marketbook.services.ledger import ItemLedger
from marketbook.services.notification_service import NotificationIssuer, NotificationService
from marketbook.services.orchestrator import ActionOrchestrator

security = HTTPBearer(auto_error=False)
settings = get_settings()


def _client_address(request: Request) -> str | None:
    return request.client.host if request.client else None


async def get_current_user(
    session: DbSession,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Resolve bearer token to the current user record. 401 if missing or invalid."""
    if not credentials:
        raise AuthenticationError("Not authorized, no token")
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise AuthenticationError("Not authorized, token failed")
    user = await UserRepository(session).get_by_id(int(payload["sub"]))
    if user is None:
        raise AuthenticationError("Not authorized, user not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_admin_user(user: CurrentUser) -> User:
    if not user.is_admin:
        raise AuthorizationError("Not authorized as an admin")
    return user


AdminUser = Annotated[User, Depends(get_admin_user)]


def get_audit_context(request: Request) -> AuditContext:
    return AuditContext(
        ip_address=_client_address(request),
        user_agent=request.headers.get("user-agent"),
    )


def get_audit_recorder(session: DbSession) -> AuditRecorder:
    return AuditRecorder(session)


def get_notification_issuer(session: DbSession) -> NotificationIssuer:
    return NotificationIssuer(session)


def get_orchestrator(
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
    notifier: Annotated[NotificationIssuer, Depends(get_notification_issuer)],
    context: Annotated[AuditContext, Depends(get_audit_context)],
) -> ActionOrchestrator:
    return ActionOrchestrator(recorder, notifier, context)


Orchestrator = Annotated[ActionOrchestrator, Depends(get_orchestrator)]


def get_item_service(
    session: DbSession,
    orchestrator: Orchestrator,
    media: Annotated[LocalMediaStore, Depends(get_media_store)],
) -> ItemService:
    return ItemService(ItemLedger(ItemRepository(session)), orchestrator, media)


def get_identity_service(session: DbSession, orchestrator: Orchestrator) -> IdentityService:
    return IdentityService(UserRepository(session), orchestrator)


def get_notification_service(session: DbSession) -> NotificationService:
    return NotificationService(NotificationRepository(session), limit=settings.notifications_limit)


def get_admin_service(session: DbSession) -> AdminService:
    return AdminService(UserRepository(session), AuditLogRepository(session))


async def rate_limit_by_address(request: Request) -> None:
    """Coarse per-address limiter applied to the identity routes only."""
    if not settings.rate_limit_enabled:
        return
    key = _client_address(request) or "unknown"
    if await hit_rate_limit(key, settings.rate_limit_max_requests, settings.rate_limit_window_seconds):
        raise RateLimitError()
