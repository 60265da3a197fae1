"""Notification schemas."""

from datetime import datetime

from marketbook.db.models.enums import Severity
from marketbook.schemas.base import ApiModel


class NotificationResponse(ApiModel):
    id: int
    user_id: int
    title: str
    message: str
    type: Severity
    read: bool
    action_url: str | None = None
    created_at: datetime
