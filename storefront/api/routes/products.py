from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.database import get_db
from storefront.mappers.product import product_images, product_to_summary_dict
from storefront.models.dto.product import (
    DisplayRequest,
    ProductDetailResponse,
    ProductDisplayResponse,
    ProductListResponse,
    ToggleRequest,
)
from storefront.services import product_service

router = APIRouter(prefix="/products", tags=["products"])


def _display(view) -> dict:
    state = view.state()
    state.pop("image_index")
    return state


@router.get("", response_model=ProductListResponse)
async def list_products(db: AsyncSession = Depends(get_db)):
    products, total = await product_service.list_published(db)
    items = []
    for p in products:
        view = product_service.build_view(p)
        items.append(product_to_summary_dict(p, view.display.price, view.has_options))
    return {"items": items, "total": total}


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_published_product(db, product_id)
    view = product_service.build_view(product)
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "category": product.category,
        "stock": product.stock,
        "price": view.product.base_price,
        "image": product.image,
        "images": product_images(product),
        "variants": view.product.variants,
        "specification_index": view.index,
        "display": _display(view),
    }


@router.post("/{product_id}/display", response_model=ProductDisplayResponse)
async def get_display(
    product_id: str,
    body: DisplayRequest,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_published_product(db, product_id)
    view = product_service.build_view(product, body.selection)
    return _display(view)


@router.post("/{product_id}/toggle", response_model=ProductDisplayResponse)
async def toggle_option(
    product_id: str,
    body: ToggleRequest,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_published_product(db, product_id)
    view = product_service.build_view(product, body.selection)
    view.toggle(body.key, body.value)
    return _display(view)
