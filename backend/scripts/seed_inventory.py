"""
Seed a handful of demo inventory items.

Run locally (from backend/):
  python scripts/seed_inventory.py

It uses the same DATABASE_* env vars as the backend (dotenv supported by core.config).
Items whose name already exists are skipped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.config import settings
from core.errors import ConflictError
from core.files import get_file_store
from db.database import async_session_maker, create_db_and_tables
from db.store import SqlInventoryStore
from schemas.inventory import InventoryItemPayload
from services.inventory import InventoryService


@dataclass(frozen=True)
class SeedItem:
    name: str
    stock: int
    description: Optional[str] = None
    price: Optional[float] = None
    expires: Optional[date] = None


SEED_ITEMS: list[SeedItem] = [
    SeedItem(name="Paracetamol 500mg", stock=120, description="Box of 20 tablets", price=3.5, expires=date(2027, 6, 30)),
    SeedItem(name="Surgical Gloves", stock=40, description="Nitrile, size M, box of 100", price=12.0),
    SeedItem(name="Bandage Roll", stock=75, description="Elastic, 10cm x 4.5m", price=1.8),
    SeedItem(name="Hand Sanitizer", stock=0, description="500ml pump bottle", price=4.25, expires=date(2026, 12, 31)),
]


async def main() -> None:
    await create_db_and_tables()
    created = 0
    skipped = 0
    async with async_session_maker() as db:
        service = InventoryService(
            SqlInventoryStore(db),
            get_file_store(),
            delete_images_with_items=settings.delete_images_with_items,
        )
        for seed in SEED_ITEMS:
            payload = InventoryItemPayload(
                item_name=seed.name,
                item_description=seed.description,
                stocks_available=seed.stock,
                item_price=seed.price,
                expire_date=seed.expires,
            )
            try:
                await service.create_item(payload)
                created += 1
            except ConflictError:
                skipped += 1

    print(f"[seed_inventory] created={created} skipped={skipped}")


if __name__ == "__main__":
    asyncio.run(main())
