"""Audit log schemas - admin read path."""

from datetime import datetime

from marketbook.db.models.enums import AuditAction, ResourceKind
from marketbook.schemas.base import ApiModel
from marketbook.schemas.item import OwnerSummary


class AuditLogResponse(ApiModel):
    id: int
    user_id: int
    user: OwnerSummary | None = None
    action: AuditAction
    resource: ResourceKind
    resource_id: int | None = None
    details: str
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    pages: int


class AuditLogPage(ApiModel):
    logs: list[AuditLogResponse]
    pagination: Pagination
