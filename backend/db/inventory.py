import uuid

from sqlalchemy import Column, Date, DateTime, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID

from .database import Base


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    item_name = Column(String, nullable=False, unique=True, index=True)
    item_description = Column(Text, nullable=True)
    # Number or free text, stored as sent
    stocks_available = Column(JSONB, nullable=False)
    item_price = Column(Numeric(12, 2), nullable=True)
    expire_date = Column(Date, nullable=True)
    # Path of the attached image, "" when there is none
    item_img = Column(String, nullable=False, default="", server_default="")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<InventoryItem(id='{self.id}', item_name='{self.item_name}')>"

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "itemName": self.item_name,
            "itemDescription": self.item_description,
            "stocksAvailable": self.stocks_available,
            "itemPrice": float(self.item_price) if self.item_price is not None else None,
            "expireDate": self.expire_date,
            "itemImg": self.item_img or "",
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @property
    def to_created_schema(self):
        """Response body for a freshly created item."""
        data = self.to_schema
        data.pop("createdAt")
        data.pop("updatedAt")
        return data
