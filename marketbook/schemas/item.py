"""Item request/response schemas - REST API contract."""

from datetime import datetime
from typing import Annotated

from pydantic import Field, StringConstraints, field_validator

from marketbook.db.models.enums import MediaKind, PaymentStatus
from marketbook.schemas.base import ApiModel

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class MediaFile(ApiModel):
    url: str
    kind: MediaKind = Field(MediaKind.IMAGE, alias="type")
    filename: str
    size: int = 0


class ItemCreate(ApiModel):
    name: RequiredText
    description: RequiredText
    category: RequiredText
    price: float = Field(0.0, ge=0)
    in_stock: bool = True
    image_url: str = ""
    customer_name: str = ""
    customer_phone: str = ""
    customer_email: str = ""
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    invoice_number: str | None = Field(None, min_length=1, max_length=32)
    due_date: datetime | None = None
    notes: str = ""


class ItemUpdate(ApiModel):
    """Sparse patch: only fields present in the request are applied.

    Presence, not truthiness, decides: 0, false and "" overwrite. Use
    model_dump(exclude_unset=True) to get the patch.
    """

    name: RequiredText | None = None
    description: RequiredText | None = None
    category: RequiredText | None = None
    price: float | None = Field(None, ge=0)
    in_stock: bool | None = None
    image_url: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    payment_status: PaymentStatus | None = None
    due_date: datetime | None = None
    notes: str | None = None

    @field_validator(
        "name", "description", "category", "price", "in_stock", "image_url",
        "customer_name", "customer_phone", "customer_email", "payment_status", "notes",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class OwnerSummary(ApiModel):
    id: int
    name: str
    email: str


class ItemResponse(ApiModel):
    id: int
    name: str
    description: str
    category: str
    price: float
    in_stock: bool
    image_url: str
    media_files: list[MediaFile]
    created_by: int
    owner: OwnerSummary | None = None
    customer_name: str
    customer_phone: str
    customer_email: str
    payment_status: PaymentStatus
    invoice_number: str
    due_date: datetime | None = None
    notes: str
    created_at: datetime
    updated_at: datetime
