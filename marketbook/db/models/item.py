"""
Item model - a product or service sold to a customer, with invoice metadata.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketbook.core.timeutils import utcnow
from marketbook.db.base import Base
from marketbook.db.models.enums import PaymentStatus

if TYPE_CHECKING:
    from marketbook.db.models.user import User


class Item(Base):
    """Item entity. createdBy and invoiceNumber never change after creation."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    price: Mapped[float] = mapped_column(nullable=False, default=0.0)
    in_stock: Mapped[bool] = mapped_column(nullable=False, default=True)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
    # Ordered list of {url, type, filename, size}; only ever appended to
    media_files: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    customer_phone: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    payment_status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=PaymentStatus.UNPAID.value, index=True
    )
    invoice_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    owner: Mapped["User"] = relationship("User", lazy="selectin")

    @property
    def owner_id(self) -> int:
        return self.created_by

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name}, invoice={self.invoice_number})>"
