"""
Notification model - per-user message; only the read flag ever changes.
"""

from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from marketbook.core.timeutils import utcnow
from marketbook.db.base import Base
from marketbook.db.models.enums import Severity


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, default=Severity.INFO.value)
    read: Mapped[bool] = mapped_column(nullable=False, default=False)
    action_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    @property
    def owner_id(self) -> int:
        return self.user_id

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, read={self.read})>"
