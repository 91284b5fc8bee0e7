from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from storefront.core.pricing import to_price


class LineItemRef(BaseModel):
    """Enough of a line item to compute its identity key."""

    product_id: str = Field(min_length=1)
    variant_id: str | None = None
    specifications: dict[str, str] | None = None

    @field_validator("specifications", mode="before")
    @classmethod
    def coerce_specifications(cls, v: Any) -> dict[str, str] | None:
        if not isinstance(v, dict) or not v:
            return None
        return {str(k): str(val) for k, val in v.items()}


class LineItemInput(LineItemRef):
    name: str = ""
    price: Decimal = Decimal("0")
    image: str | None = None
    quantity: int | None = Field(default=None, ge=1, le=100)

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Decimal:
        return to_price(v)


class AddToCartRequest(BaseModel):
    """Shopper's add-to-cart request; name, price and image are looked up server-side."""

    product_id: str = Field(min_length=1)
    selection: dict[str, str] = Field(default_factory=dict)
    quantity: int = Field(default=1, ge=1, le=100)


class CartLineItem(LineItemRef):
    name: str = ""
    price: Decimal
    image: str | None = None
    quantity: int = Field(ge=1)

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Decimal:
        return to_price(v)


class QuantityUpdate(LineItemRef):
    quantity: int


class CartSnapshot(BaseModel):
    items: list[CartLineItem]
    total_price: Decimal
    total_items: int
