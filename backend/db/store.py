"""Record store for inventory items.

``InventoryStore`` is what the service talks to. ``SqlInventoryStore`` backs it
with an async SQLAlchemy session and turns driver errors into the service's
error types.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictError, StoreFailure
from db.inventory import InventoryItem

logger = logging.getLogger(__name__)

# Fields matched by free-text search
SEARCHABLE_FIELDS = (
    "item_name",
    "item_description",
    "stocks_available",
    "item_price",
    "expire_date",
    "item_img",
)


class InventoryStore(ABC):

    @abstractmethod
    async def find_all(self) -> list[InventoryItem]:
        """Return every item in store order."""

    @abstractmethod
    async def find_by_id(self, item_id: UUID) -> InventoryItem | None:
        """Return the item with this id, or None."""

    @abstractmethod
    async def find_by_ids(self, item_ids: Iterable[UUID]) -> list[InventoryItem]:
        """Return the items whose id is in ``item_ids``; unknown ids are skipped."""

    @abstractmethod
    async def find_one_by(self, field: str, value: Any) -> InventoryItem | None:
        """Return the first item whose ``field`` equals ``value``, or None."""

    @abstractmethod
    async def insert(self, fields: dict[str, Any]) -> InventoryItem:
        """Persist a new item and return it with its id assigned."""

    @abstractmethod
    async def save(self, item: InventoryItem) -> InventoryItem:
        """Persist changes made to an existing item."""

    @abstractmethod
    async def delete_one(self, item: InventoryItem) -> None:
        """Remove one item."""

    @abstractmethod
    async def delete_by_ids(self, item_ids: Iterable[UUID]) -> list[UUID]:
        """Remove every item whose id is in ``item_ids``; return the removed ids."""

    @abstractmethod
    async def search(self, query: str) -> list[InventoryItem]:
        """Return items with ``query`` in any searchable field, best match first."""


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlInventoryStore(InventoryStore):

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Integrity error while trying to %s: %s", action, e.orig)
            raise ConflictError("Inventory under that name in use") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to %s", action)
            raise StoreFailure(f"Failed to {action}: {e}") from e

    async def _scalars(self, stmt, action: str) -> list[InventoryItem]:
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.exception("Failed to %s", action)
            raise StoreFailure(f"Failed to {action}: {e}") from e
        return list(result.scalars().all())

    async def find_all(self) -> list[InventoryItem]:
        return await self._scalars(select(InventoryItem), "list inventory")

    async def find_by_id(self, item_id: UUID) -> InventoryItem | None:
        rows = await self._scalars(
            select(InventoryItem).where(InventoryItem.id == item_id), "load inventory item"
        )
        return rows[0] if rows else None

    async def find_by_ids(self, item_ids: Iterable[UUID]) -> list[InventoryItem]:
        ids = list(item_ids)
        if not ids:
            return []
        return await self._scalars(
            select(InventoryItem).where(InventoryItem.id.in_(ids)), "load inventory items"
        )

    async def find_one_by(self, field: str, value: Any) -> InventoryItem | None:
        column = getattr(InventoryItem, field)
        rows = await self._scalars(
            select(InventoryItem).where(column == value).limit(1), f"look up inventory by {field}"
        )
        return rows[0] if rows else None

    async def insert(self, fields: dict[str, Any]) -> InventoryItem:
        item = InventoryItem(**fields)
        self.db.add(item)
        await self._commit("create inventory item")
        await self.db.refresh(item)
        return item

    async def save(self, item: InventoryItem) -> InventoryItem:
        self.db.add(item)
        await self._commit("update inventory item")
        await self.db.refresh(item)
        return item

    async def delete_one(self, item: InventoryItem) -> None:
        await self.db.delete(item)
        await self._commit("delete inventory item")

    async def delete_by_ids(self, item_ids: Iterable[UUID]) -> list[UUID]:
        ids = list(item_ids)
        if not ids:
            return []
        stmt = delete(InventoryItem).where(InventoryItem.id.in_(ids)).returning(InventoryItem.id)
        try:
            result = await self.db.execute(stmt)
            deleted = [row[0] for row in result.all()]
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to delete inventory items")
            raise StoreFailure(f"Failed to delete inventory items: {e}") from e
        await self._commit("delete inventory items")
        return deleted

    async def search(self, query: str) -> list[InventoryItem]:
        columns = [
            func.coalesce(cast(getattr(InventoryItem, name), String), "")
            for name in SEARCHABLE_FIELDS
        ]
        pattern = _like_pattern(query)
        document = func.to_tsvector("simple", func.concat_ws(" ", *columns))
        rank = func.ts_rank(document, func.plainto_tsquery("simple", query))
        stmt = (
            select(InventoryItem)
            .where(or_(*[col.ilike(pattern, escape="\\") for col in columns]))
            .order_by(rank.desc(), InventoryItem.item_name.asc())
        )
        return await self._scalars(stmt, "search inventory")
