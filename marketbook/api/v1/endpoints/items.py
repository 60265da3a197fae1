"""
Item endpoints - CRUD plus the ledger's aggregate views.
Create and update take JSON or multipart/form-data (fields + mediaFiles uploads).
"""

from typing import Annotated, Any

import pydantic
from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import UploadFile

from marketbook.core.dependencies import AdminUser, CurrentUser, get_item_service
from marketbook.core.errors import ValidationError
from marketbook.schemas.base import MessageResponse
from marketbook.schemas.item import ItemCreate, ItemResponse, ItemUpdate
from marketbook.schemas.stats import FinancialSummary, ItemStats
from marketbook.services.item_service import ItemService

router = APIRouter()

Items = Annotated[ItemService, Depends(get_item_service)]

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")
# In forms an empty value for these means "not supplied"
NON_TEXT_FIELDS = {"price", "inStock", "in_stock", "dueDate", "due_date", "paymentStatus", "payment_status"}


async def _read_payload(request: Request) -> tuple[dict[str, Any], list[UploadFile]]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        uploads = [v for v in form.getlist("mediaFiles") if isinstance(v, UploadFile)]
        data = {
            key: value
            for key, value in form.multi_items()
            if not isinstance(value, UploadFile) and not (key in NON_TEXT_FIELDS and value == "")
        }
        return data, uploads
    if not await request.body():
        return {}, []
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Malformed JSON body") from None
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data, []


def _validate(model: type[pydantic.BaseModel], data: dict[str, Any]):
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"]) or "body"
        raise ValidationError(f"{field}: {first['msg']}") from None


@router.get("", response_model=list[ItemResponse])
async def list_items(user: CurrentUser, svc: Items):
    """Admins get every item, users their own. Newest first."""
    return await svc.list_items(user)


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(request: Request, user: CurrentUser, svc: Items):
    """Create an item owned by the caller; the invoice number is assigned here."""
    data, uploads = await _read_payload(request)
    return await svc.create(user, _validate(ItemCreate, data), uploads)


@router.get("/admin/all", response_model=list[ItemResponse])
async def list_all_items(admin: AdminUser, svc: Items):
    return await svc.list_all()


@router.get("/stats", response_model=ItemStats)
async def item_stats(admin: AdminUser, svc: Items):
    return await svc.stats()


@router.get("/financial-summary", response_model=FinancialSummary)
async def financial_summary(user: CurrentUser, svc: Items):
    return await svc.financial_summary(user)


@router.get("/by-payment-status/{payment_status}", response_model=list[ItemResponse])
async def items_by_payment_status(payment_status: str, user: CurrentUser, svc: Items):
    return await svc.by_payment_status(user, payment_status)


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: int, user: CurrentUser, svc: Items):
    """404 when missing, 403 when neither owner nor admin."""
    return await svc.get(user, item_id)


@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(item_id: int, request: Request, user: CurrentUser, svc: Items):
    """Sparse update: only supplied fields change; uploads are appended."""
    data, uploads = await _read_payload(request)
    return await svc.update(user, item_id, _validate(ItemUpdate, data), uploads)


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_item(item_id: int, user: CurrentUser, svc: Items):
    return await svc.delete(user, item_id)
