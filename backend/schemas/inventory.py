import math
from datetime import date
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# A stock quantity is kept as sent: a number, or free text such as "10 boxes"
Quantity = Union[int, float, str]

REQUIRED_FIELDS = ("item_name", "stocks_available")


class InventoryItemPayload(BaseModel):
    """Fields sent on create or update.

    Every field is optional at this level. Which fields are required on
    create, and which were actually sent on update, is decided by the
    service from ``model_fields_set``.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    item_name: Optional[str] = Field(default=None, alias="itemName")
    item_description: Optional[str] = Field(default=None, alias="itemDescription")
    stocks_available: Optional[Quantity] = Field(default=None, alias="stocksAvailable")
    item_price: Optional[float] = Field(default=None, alias="itemPrice")
    expire_date: Optional[date] = Field(default=None, alias="expireDate")

    @field_validator("item_name", "item_description", mode="before")
    @classmethod
    def _strip_nullable(cls, v):
        if v is None:
            return None
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("item_price", "expire_date", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("stocks_available", mode="before")
    @classmethod
    def _quantity(cls, v):
        # Form fields arrive as text; numeric text becomes a number
        if isinstance(v, bool):
            raise ValueError("stock must be a number or text")
        if not isinstance(v, str):
            return v
        v = v.strip()
        if not v:
            return None
        try:
            return int(v)
        except ValueError:
            pass
        try:
            number = float(v)
        except ValueError:
            return v
        return number if math.isfinite(number) else v

    def provided(self) -> dict:
        """Columns explicitly present in the request, with their values."""
        return self.model_dump(include=self.model_fields_set)

    def missing_required(self) -> list[str]:
        return [name for name in REQUIRED_FIELDS if getattr(self, name) is None]


class SearchText(BaseModel):
    query: str = ""


class SearchRequest(BaseModel):
    text: SearchText = Field(default_factory=SearchText)


class BatchDeleteResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ids: list[str]
    deleted_count: int = Field(alias="deletedCount")
