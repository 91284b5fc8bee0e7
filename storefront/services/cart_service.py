import json
import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.exceptions import BadRequestError
from storefront.core.session_context import hash_session_key
from storefront.models.dto.cart import (
    AddToCartRequest,
    CartLineItem,
    CartSnapshot,
    LineItemInput,
    LineItemRef,
)
from storefront.models.orm.cart_session import CartSession
from storefront.services import product_service

logger = logging.getLogger(__name__)

LineItemKey = tuple[str, str]


def line_item_key(item: LineItemRef) -> LineItemKey:
    """Identity of a cart row: product plus its specification snapshot or variant."""
    if item.specifications:
        spec_key = json.dumps(
            item.specifications, sort_keys=True, ensure_ascii=False, separators=(",", ":"),
        )
    else:
        spec_key = item.variant_id or ""
    return item.product_id, spec_key


class Cart:
    """Ordered cart rows keyed by product + variant/specification identity.

    Quantities are always >= 1 and no two rows share a key. Totals are
    summed from the rows on every call.
    """

    def __init__(self, items: list[CartLineItem] | None = None):
        self._items: list[CartLineItem] = []
        for item in items or []:
            # Rehydrated rows may repeat a key if the blob was written by hand
            self._merge(item.model_copy())

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def _find(self, key: LineItemKey) -> CartLineItem | None:
        return next((i for i in self._items if line_item_key(i) == key), None)

    def _merge(self, row: CartLineItem) -> CartLineItem:
        existing = self._find(line_item_key(row))
        if existing:
            existing.quantity += row.quantity
            return existing
        self._items.append(row)
        return row

    def add(self, candidate: LineItemInput) -> CartLineItem:
        row = CartLineItem(
            product_id=candidate.product_id,
            name=candidate.name,
            price=candidate.price,
            image=candidate.image,
            quantity=candidate.quantity or 1,
            variant_id=candidate.variant_id,
            specifications=candidate.specifications,
        )
        return self._merge(row)

    def remove(self, ref: LineItemRef) -> bool:
        key = line_item_key(ref)
        before = len(self._items)
        self._items = [i for i in self._items if line_item_key(i) != key]
        return len(self._items) < before

    def update_quantity(self, ref: LineItemRef, quantity: int) -> CartLineItem | None:
        if quantity <= 0:
            self.remove(ref)
            return None
        existing = self._find(line_item_key(ref))
        if existing:
            existing.quantity = quantity
        return existing

    def clear(self) -> int:
        count = len(self._items)
        self._items = []
        return count

    def total_price(self) -> Decimal:
        return sum((i.price * i.quantity for i in self._items), Decimal("0"))

    def total_item_count(self) -> int:
        return sum(i.quantity for i in self._items)

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            items=self.items,
            total_price=self.total_price(),
            total_items=self.total_item_count(),
        )

    def to_records(self) -> list[dict]:
        return [i.model_dump(mode="json") for i in self._items]

    @classmethod
    def from_records(cls, records: Any) -> "Cart":
        """Rehydrate a stored blob; anything unreadable gives an empty cart."""
        if records is None:
            return cls()
        if not isinstance(records, list):
            logger.warning("Discarding cart blob of type %s", type(records).__name__)
            return cls()
        try:
            items = [CartLineItem.model_validate(r) for r in records]
        except ValidationError:
            logger.warning("Discarding corrupt cart blob with %d records", len(records))
            return cls()
        return cls(items)


# ── Session persistence ──────────────────────────────────────────────────────


async def _get_row(
    db: AsyncSession, session_key: str, *, for_update: bool = False,
) -> CartSession | None:
    query = select(CartSession).where(
        CartSession.session_key == session_key,
        CartSession.storage_name == settings.cart_storage_name,
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def load_cart(db: AsyncSession, session_key: str) -> Cart:
    row = await _get_row(db, session_key)
    return Cart.from_records(row.items if row else None)


async def save_cart(
    db: AsyncSession, session_key: str, cart: Cart, row: CartSession | None = None,
) -> None:
    if row is None:
        row = await _get_row(db, session_key, for_update=True)
    if row is None:
        row = CartSession(
            session_key=session_key,
            storage_name=settings.cart_storage_name,
            items=cart.to_records(),
        )
        db.add(row)
    else:
        row.items = cart.to_records()
    await db.flush()


async def mutate_cart(
    db: AsyncSession, session_key: str, operation: Callable[[Cart], Any],
) -> Cart:
    """Read the latest stored cart under a row lock, apply ``operation``, write back.

    Several tabs share one session cart, so the read-modify-write must not
    interleave with another request on the same session.
    """
    row = await _get_row(db, session_key, for_update=True)
    cart = Cart.from_records(row.items if row else None)
    operation(cart)
    await save_cart(db, session_key, cart, row=row)
    logger.info(
        "Cart updated: %d rows, %d items",
        len(cart), cart.total_item_count(),
        extra={"cart": hash_session_key(session_key)},
    )
    return cart


async def add_item(db: AsyncSession, session_key: str, candidate: LineItemInput) -> Cart:
    return await mutate_cart(db, session_key, lambda cart: cart.add(candidate))


async def add_product(
    db: AsyncSession, session_key: str, request: AddToCartRequest,
) -> Cart:
    """Add a published product at the price the product page shows for ``selection``.

    Products with specification choices need a selection that resolves to a
    variant; the unit price always comes from the catalog, never the client.
    """
    product = await product_service.get_published_product(db, request.product_id)
    view = product_service.build_view(product, request.selection)
    if view.has_options and view.resolution.variant is None:
        raise BadRequestError("Select an available option for every specification")
    return await add_item(db, session_key, view.line_item(request.quantity))


async def remove_item(db: AsyncSession, session_key: str, ref: LineItemRef) -> Cart:
    return await mutate_cart(db, session_key, lambda cart: cart.remove(ref))


async def update_item_quantity(
    db: AsyncSession, session_key: str, ref: LineItemRef, quantity: int,
) -> Cart:
    return await mutate_cart(db, session_key, lambda cart: cart.update_quantity(ref, quantity))


async def clear_cart(db: AsyncSession, session_key: str) -> Cart:
    return await mutate_cart(db, session_key, lambda cart: cart.clear())
