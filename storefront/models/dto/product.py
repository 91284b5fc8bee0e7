from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_validator

from storefront.core.pricing import to_price
from storefront.core.validators import clean_image_list, validate_http_url

# Specification key -> distinct values, both in first-seen order
SpecificationIndex = dict[str, list[str]]
# Specification key -> chosen value; unchosen keys are absent
Selection = dict[str, str]


def _clean_text(v: Any) -> str | None:
    if v is None:
        return None
    text = str(v).strip()
    return text or None


class Variant(BaseModel):
    id: str
    specifications: dict[str, str] = Field(default_factory=dict)
    price: Decimal = Decimal("0")
    images: list[str] = Field(default_factory=list)
    image: str | None = None
    sku: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("specifications", mode="before")
    @classmethod
    def coerce_specifications(cls, v: Any) -> dict[str, str]:
        if not isinstance(v, dict):
            return {}
        return {str(k): str(val) for k, val in v.items() if val is not None}

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, v: Any) -> Decimal:
        return to_price(v)

    @field_validator("images", mode="before")
    @classmethod
    def coerce_images(cls, v: Any) -> list[str]:
        return clean_image_list(v)

    @field_validator("image", "sku", mode="before")
    @classmethod
    def coerce_optional_text(cls, v: Any) -> str | None:
        return _clean_text(v)


def parse_variants(raw: Any) -> list[Variant]:
    """Read a stored variant list, skipping entries that are neither mappings nor variants."""
    if not isinstance(raw, list):
        return []
    variants = []
    for position, entry in enumerate(raw):
        if isinstance(entry, Variant):
            variants.append(entry)
            continue
        if not isinstance(entry, dict):
            continue
        data = dict(entry)
        if not data.get("id"):
            data["id"] = f"variant-{position}"
        variants.append(Variant.model_validate(data))
    return variants


class CatalogProduct(BaseModel):
    id: str
    name: str = ""
    base_price: Decimal = Decimal("0")
    base_images: list[str] = Field(default_factory=list)
    variants: list[Variant] = Field(default_factory=list)

    @field_validator("base_price", mode="before")
    @classmethod
    def coerce_base_price(cls, v: Any) -> Decimal:
        return to_price(v)

    @field_validator("base_images", mode="before")
    @classmethod
    def coerce_base_images(cls, v: Any) -> list[str]:
        return clean_image_list(v)

    @field_validator("variants", mode="before")
    @classmethod
    def coerce_variants(cls, v: Any) -> list[Variant]:
        return parse_variants(v)


class Resolution(BaseModel):
    variant: Variant | None = None
    is_fully_selected: bool = False


class ProductDisplay(BaseModel):
    price: Decimal
    images: list[str]


# ── API payloads ─────────────────────────────────────────────────────────────


class DisplayRequest(BaseModel):
    selection: Selection = Field(default_factory=dict)


class ToggleRequest(BaseModel):
    selection: Selection = Field(default_factory=dict)
    key: str = Field(min_length=1)
    value: str


class ProductDisplayResponse(BaseModel):
    product_id: str
    selection: Selection
    is_fully_selected: bool
    variant_id: str | None = None
    sku: str | None = None
    price: Decimal
    images: list[str]


class ProductDetailResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    category: str | None = None
    stock: int = 0
    price: Decimal
    image: str | None = None
    images: list[str] = []
    variants: list[Variant] = []
    specification_index: SpecificationIndex = {}
    display: ProductDisplayResponse


class ImportProductRequest(BaseModel):
    source_url: str
    title: str = Field(min_length=1, max_length=500)
    images: list[str] = Field(min_length=1)
    original_price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    specifications: dict[str, Any] | None = None
    description: str | None = None
    category: str | None = Field(default=None, max_length=255)
    external_id: str | None = Field(default=None, max_length=255)

    @field_validator("source_url")
    @classmethod
    def validate_url_scheme(cls, v: str) -> str:
        return validate_http_url(v)


class ImportProductResponse(BaseModel):
    id: str
    name: str
    slug: str
    external_id: str | None = None
    import_status: str
    created: bool


class ReviewUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    images: list[str] | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    variant_prices: dict[str, str | int | float | None] | None = None
    publish: bool = False


class ReviewProductResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    image: str | None = None
    images: list[str] = []
    price: Decimal
    original_price: Decimal | None = None
    source_url: str | None = None
    external_id: str | None = None
    import_status: str
    is_active: bool
    variants: list[Variant] = []
    updated_at: datetime | None = None


class ProductSummary(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    image: str | None = None
    images: list[str] = []
    category: str | None = None
    stock: int = 0
    price: Decimal
    display_price: Decimal
    has_options: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProductListResponse(BaseModel):
    items: list[ProductSummary]
    total: int


class AdminProductSummary(BaseModel):
    id: str
    name: str
    slug: str
    price: Decimal
    category: str | None = None
    import_status: str
    is_active: bool
    images: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminProductListResponse(BaseModel):
    items: list[AdminProductSummary]
    total: int
