from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.database import get_cart_session, get_db
from storefront.models.dto.cart import AddToCartRequest, CartSnapshot, LineItemRef, QuantityUpdate
from storefront.services import cart_service

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("", response_model=CartSnapshot)
async def get_cart(
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_cart_session),
):
    cart = await cart_service.load_cart(db, session_key)
    return cart.snapshot()


@router.post("/items", response_model=CartSnapshot, status_code=201)
async def add_to_cart(
    body: AddToCartRequest,
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_cart_session),
):
    cart = await cart_service.add_product(db, session_key, body)
    return cart.snapshot()


@router.put("/items", response_model=CartSnapshot)
async def update_cart_item(
    body: QuantityUpdate,
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_cart_session),
):
    ref = LineItemRef(
        product_id=body.product_id,
        variant_id=body.variant_id,
        specifications=body.specifications,
    )
    cart = await cart_service.update_item_quantity(db, session_key, ref, body.quantity)
    return cart.snapshot()


@router.post("/items/remove", response_model=CartSnapshot)
async def remove_from_cart(
    body: LineItemRef,
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_cart_session),
):
    cart = await cart_service.remove_item(db, session_key, body)
    return cart.snapshot()


@router.delete("", status_code=204)
async def clear_cart(
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_cart_session),
):
    await cart_service.clear_cart(db, session_key)
    return Response(status_code=204)
