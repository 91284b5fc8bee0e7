from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.database import get_db
from storefront.mappers.product import product_to_admin_summary_dict, product_to_review_dict
from storefront.models.dto.product import (
    AdminProductListResponse,
    ImportProductRequest,
    ImportProductResponse,
    ReviewProductResponse,
    ReviewUpdate,
)
from storefront.models.orm.product import ImportStatus
from storefront.services import product_service

router = APIRouter(tags=["admin-products"])


@router.post("/import-product", response_model=ImportProductResponse)
async def import_product(
    body: ImportProductRequest,
    db: AsyncSession = Depends(get_db),
):
    product, created = await product_service.import_product(db, body)
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "external_id": product.external_id,
        "import_status": product.import_status.value,
        "created": created,
    }


@router.get("/products/review/next", response_model=ReviewProductResponse | None)
async def next_for_review(
    current_id: str | None = None,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_next_for_review(db, current_id)
    if product is None:
        return None
    return product_to_review_dict(product)


@router.get("/products/{product_id}", response_model=ReviewProductResponse)
async def get_for_review(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    product = await product_service.get_by_id(db, product_id)
    return product_to_review_dict(product)


@router.put("/products/{product_id}/review", response_model=ReviewProductResponse)
async def review_product(
    product_id: str,
    body: ReviewUpdate,
    db: AsyncSession = Depends(get_db),
):
    product, _ = await product_service.apply_review(db, product_id, body)
    return product_to_review_dict(product)


@router.get("/products", response_model=AdminProductListResponse)
async def list_products(
    status: ImportStatus | None = None,
    category: str | None = Query(None, max_length=255),
    search: str | None = Query(None, max_length=200),
    db: AsyncSession = Depends(get_db),
):
    products, total = await product_service.list_products(
        db, status=status, category=category, search=search,
    )
    return {
        "items": [product_to_admin_summary_dict(p) for p in products],
        "total": total,
    }


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(
    product_id: str,
    db: AsyncSession = Depends(get_db),
):
    await product_service.delete_product(db, product_id)
