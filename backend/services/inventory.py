"""Inventory request handling.

``InventoryService`` holds every decision made for an inventory request:
required fields, name uniqueness, partial updates, the image attachment
lifecycle and search. Persistence goes through an ``InventoryStore`` and image
bytes through a ``FileStore``; both are injected so either can be swapped.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional
from uuid import UUID

from fastapi.concurrency import run_in_threadpool

from core.errors import ConflictError, NotFoundError, StoreFailure, ValidationError
from core.files import FileStore, UploadedImage
from db.inventory import InventoryItem
from db.store import InventoryStore
from schemas.inventory import InventoryItemPayload

logger = logging.getLogger(__name__)


class InventoryService:

    def __init__(
        self,
        store: InventoryStore,
        files: FileStore,
        delete_images_with_items: bool = False,
    ) -> None:
        self.store = store
        self.files = files
        self.delete_images_with_items = delete_images_with_items

    async def _get_or_404(self, item_id: UUID) -> InventoryItem:
        item = await self.store.find_by_id(item_id)
        if item is None:
            logger.warning("Inventory item requested but not found: %s", item_id)
            raise NotFoundError("Inventory not found")
        return item

    async def _stage_image(self, image: Optional[UploadedImage]) -> str:
        if image is None:
            return ""
        return await run_in_threadpool(self.files.save, image)

    async def _discard_image(self, path: str, reason: str) -> None:
        """Delete a file whose record no longer points at it; failures are only logged."""
        if not path:
            return
        try:
            await run_in_threadpool(self.files.delete, path)
        except StoreFailure as e:
            logger.warning("Could not remove image %s (%s): %s", path, reason, e.message)

    @staticmethod
    def _unique_ids(item_ids: Iterable[UUID]) -> list[UUID]:
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            raise ValidationError("At least one id is required")
        return ids

    async def list_items(self) -> list[InventoryItem]:
        return await self.store.find_all()

    async def get_item(self, item_id: UUID) -> InventoryItem:
        return await self._get_or_404(item_id)

    async def get_many(self, item_ids: Iterable[UUID]) -> list[InventoryItem]:
        return await self.store.find_by_ids(self._unique_ids(item_ids))

    async def create_item(
        self,
        payload: InventoryItemPayload,
        image: Optional[UploadedImage] = None,
    ) -> InventoryItem:
        if payload.missing_required():
            raise ValidationError("Please add all fields")

        existing = await self.store.find_one_by("item_name", payload.item_name)
        if existing is not None:
            raise ConflictError("Inventory under that name in use")

        item_img = await self._stage_image(image)
        if item_img:
            logger.debug("Attached image path: %s", item_img)

        fields = {
            "item_name": payload.item_name,
            "item_description": payload.item_description,
            "stocks_available": payload.stocks_available,
            "item_price": payload.item_price,
            "expire_date": payload.expire_date,
            "item_img": item_img,
        }
        try:
            item = await self.store.insert(fields)
        except Exception:
            await self._discard_image(item_img, "create failed")
            raise

        logger.info("Created inventory item %s (%s)", item.id, item.item_name)
        return item

    async def update_item(
        self,
        item_id: UUID,
        payload: InventoryItemPayload,
        image: Optional[UploadedImage] = None,
    ) -> InventoryItem:
        item = await self._get_or_404(item_id)
        changes = payload.provided()

        for name in ("item_name", "stocks_available"):
            if name in changes and changes[name] is None:
                raise ValidationError(f"{name} cannot be empty")

        new_name = changes.get("item_name")
        if new_name is not None and new_name != item.item_name:
            holder = await self.store.find_one_by("item_name", new_name)
            if holder is not None and holder.id != item.id:
                raise ConflictError("Inventory under that name in use")

        # Stage the new file before touching the record; the old one goes only after commit
        previous_img = item.item_img or ""
        staged_img = await self._stage_image(image)

        for column, value in changes.items():
            setattr(item, column, value)
        if staged_img:
            item.item_img = staged_img

        try:
            item = await self.store.save(item)
        except Exception:
            await self._discard_image(staged_img, "update failed")
            raise

        if staged_img and previous_img and previous_img != staged_img:
            await self._discard_image(previous_img, "replaced")

        logger.info("Updated inventory item %s fields=%s image=%s", item.id, sorted(changes), bool(staged_img))
        return item

    async def delete_item(self, item_id: UUID) -> InventoryItem:
        item = await self._get_or_404(item_id)
        await self.store.delete_one(item)
        logger.info("Deleted inventory item %s", item_id)
        if self.delete_images_with_items:
            await self._discard_image(item.item_img or "", "item deleted")
        return item

    async def delete_many(self, item_ids: Iterable[UUID]) -> list[UUID]:
        ids = self._unique_ids(item_ids)
        items = await self.store.find_by_ids(ids)
        if not items:
            logger.warning("Batch delete matched no inventory items: %s", ids)
            raise NotFoundError("Inventory not found")

        deleted = await self.store.delete_by_ids([item.id for item in items])
        logger.info("Deleted %d inventory items", len(deleted))
        if self.delete_images_with_items:
            removed = set(deleted)
            for item in items:
                if item.id in removed:
                    await self._discard_image(item.item_img or "", "item deleted")
        return deleted

    async def search(self, query: Optional[str]) -> list[InventoryItem]:
        text = (query or "").strip()
        if not text:
            raise ValidationError("Search query is required")
        return await self.store.search(text)
