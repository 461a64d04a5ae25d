import json
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from core.config import settings
from core.errors import ValidationError
from core.files import FileStore, UploadedImage, get_file_store, image_from_upload
from db.database import get_async_session
from db.store import SqlInventoryStore
from schemas.inventory import BatchDeleteResult, InventoryItemPayload, SearchRequest
from services.inventory import InventoryService

router = APIRouter()

# Multipart field carrying the item image
IMAGE_FIELD = "itemImg"


def get_inventory_service(
    db: AsyncSession = Depends(get_async_session),
    files: FileStore = Depends(get_file_store),
) -> InventoryService:
    return InventoryService(
        SqlInventoryStore(db),
        files,
        delete_images_with_items=settings.delete_images_with_items,
    )


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    where = ".".join(str(part) for part in err.get("loc", ())) or "body"
    return f"{where}: {err.get('msg', 'invalid value')}"


def _parse_ids(raw: str) -> List[UUID]:
    try:
        return [UUID(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError as e:
        raise ValidationError("ids must be a comma separated list of UUIDs") from e


async def _json_object(request: Request) -> Dict:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except ValueError as e:
        raise ValidationError("Request body must be valid JSON") from e
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


async def _read_payload(request: Request) -> Tuple[InventoryItemPayload, Optional[UploadedImage]]:
    """Decode a JSON or form body plus an optional image part."""
    content_type = (request.headers.get("content-type") or "").lower()
    image = None

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        data: Dict = {}
        async with request.form() as form:
            for key, value in form.multi_items():
                if isinstance(value, StarletteUploadFile):
                    if key == IMAGE_FIELD:
                        image = await image_from_upload(value)
                    continue
                data[key] = value
    else:
        data = await _json_object(request)

    try:
        payload = InventoryItemPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e
    return payload, image


@router.get("/", response_model=List[Dict])
async def get_inventory(service: InventoryService = Depends(get_inventory_service)):
    """Get all inventory items"""
    items = await service.list_items()
    return [item.to_schema for item in items]


@router.get("/batch", response_model=List[Dict])
async def get_multi_inventory(
    ids: str = Query(..., description="Comma separated item ids"),
    service: InventoryService = Depends(get_inventory_service),
):
    """Get the inventory items matching a set of ids"""
    items = await service.get_many(_parse_ids(ids))
    return [item.to_schema for item in items]


@router.get("/{item_id}", response_model=Dict)
async def get_one_inventory(item_id: UUID, service: InventoryService = Depends(get_inventory_service)):
    """Get an inventory item by ID"""
    item = await service.get_item(item_id)
    return item.to_schema


@router.post("/", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def post_inventory(request: Request, service: InventoryService = Depends(get_inventory_service)):
    """Create an inventory item, optionally with an image in the `itemImg` form field"""
    payload, image = await _read_payload(request)
    item = await service.create_item(payload, image)
    return item.to_created_schema


@router.put("/{item_id}", response_model=Dict)
async def update_inventory(
    item_id: UUID,
    request: Request,
    service: InventoryService = Depends(get_inventory_service),
):
    """Update the fields present in the request; a new image replaces the old one"""
    payload, image = await _read_payload(request)
    item = await service.update_item(item_id, payload, image)
    return item.to_schema


@router.delete("/batch", response_model=BatchDeleteResult, response_model_by_alias=True)
async def delete_multi_inventory(
    ids: str = Query(..., description="Comma separated item ids"),
    service: InventoryService = Depends(get_inventory_service),
):
    """Delete every inventory item matching a set of ids"""
    deleted = await service.delete_many(_parse_ids(ids))
    return BatchDeleteResult(ids=[str(i) for i in deleted], deleted_count=len(deleted))


@router.delete("/{item_id}", response_model=Dict)
async def delete_inventory(item_id: UUID, service: InventoryService = Depends(get_inventory_service)):
    """Delete an inventory item"""
    item = await service.delete_item(item_id)
    return {"id": str(item.id)}


@router.post("/search", response_model=List[Dict])
async def search_inventory(request: Request, service: InventoryService = Depends(get_inventory_service)):
    """Free-text search across every item field; body is `{"text": {"query": "..."}}`"""
    try:
        payload = SearchRequest.model_validate(await _json_object(request))
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e
    items = await service.search(payload.text.query)
    return [item.to_schema for item in items]
