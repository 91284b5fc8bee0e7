import base64
import logging
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import ConflictError, InvalidImportError, NotFoundError
from storefront.core.identifiers import (
    extract_external_id_from_url,
    generate_product_id,
    generate_slug,
)
from storefront.core.pricing import quantize_price, to_price
from storefront.core.validators import clean_image_list
from storefront.mappers.product import product_to_catalog, product_variants
from storefront.models.dto.product import ImportProductRequest, ReviewUpdate, Selection
from storefront.models.orm.product import ImportStatus, Product
from storefront.services.product_view import ProductView

logger = logging.getLogger(__name__)


# ── Storefront reads ─────────────────────────────────────────────────────────


async def get_by_id(db: AsyncSession, product_id: str) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


async def get_published_product(db: AsyncSession, product_id: str) -> Product:
    result = await db.execute(
        select(Product).where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.import_status == ImportStatus.PUBLISHED,
        )
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


def build_view(product: Product, selection: Selection | None = None) -> ProductView:
    return ProductView(product_to_catalog(product), selection)


async def _list_with_total(db: AsyncSession, where) -> tuple[list[Product], int]:
    count_result = await db.execute(
        select(func.count()).select_from(Product).where(where)
    )
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Product).where(where).order_by(Product.created_at.desc())
    )
    return list(result.scalars().all()), total


async def list_published(db: AsyncSession) -> tuple[list[Product], int]:
    """Storefront catalog: active, published products, newest first."""
    where = and_(
        Product.is_active.is_(True),
        Product.import_status == ImportStatus.PUBLISHED,
    )
    return await _list_with_total(db, where)


# ── Back office ──────────────────────────────────────────────────────────────


async def list_products(
    db: AsyncSession,
    *,
    status: ImportStatus | None = None,
    category: str | None = None,
    search: str | None = None,
) -> tuple[list[Product], int]:
    conditions = []
    if status is not None:
        conditions.append(Product.import_status == status)
    if category:
        conditions.append(Product.category == category)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )
    where = and_(*conditions) if conditions else True
    return await _list_with_total(db, where)


async def delete_product(db: AsyncSession, product_id: str) -> str:
    """Remove a product for good; cart rows already holding it keep their snapshot."""
    product = await get_by_id(db, product_id)
    name = product.name
    await db.delete(product)
    await db.flush()
    logger.info("Deleted product %s", product_id, extra={"product_name": name})
    return name


# ── Marketplace import ───────────────────────────────────────────────────────


def resolve_external_id(source_url: str, external_id: str | None) -> str:
    """Given id, else the one in the listing URL, else a URL-derived fallback."""
    resolved = external_id or extract_external_id_from_url(source_url)
    if resolved:
        return resolved
    encoded = base64.b64encode(source_url.encode()).decode()
    return f"url-{encoded[:50]}"


async def _unique_slug(db: AsyncSession, title: str) -> str:
    slug = generate_slug(title)
    result = await db.execute(select(Product.id).where(Product.slug == slug))
    if result.scalar_one_or_none() is not None:
        millis = int(datetime.now(timezone.utc).timestamp() * 1000)
        slug = f"{slug}-{millis}"
    return slug


async def import_product(
    db: AsyncSession, data: ImportProductRequest,
) -> tuple[Product, bool]:
    """Create or refresh a draft listing keyed by its marketplace id.

    Returns the product and whether it was newly created. An update keeps the
    existing slug so storefront URLs stay stable.
    """
    images = clean_image_list(data.images)
    missing = [
        name for name, value in (
            ("source_url", data.source_url.strip()),
            ("title", data.title.strip()),
            ("images", images),
        ) if not value
    ]
    if missing:
        raise InvalidImportError(missing)

    external_id = resolve_external_id(data.source_url, data.external_id)

    result = await db.execute(
        select(Product).where(Product.external_id == external_id).with_for_update()
    )
    product = result.scalar_one_or_none()
    created = product is None

    fields = {
        "name": data.title.strip(),
        "description": data.description or None,
        "image": images[0],
        "images": images,
        "category": data.category or None,
        "stock": 0,
        "price": quantize_price(to_price(data.price)),
        "original_price": quantize_price(to_price(data.original_price)),
        "is_active": True,
        "source_url": data.source_url,
        "external_id": external_id,
        "import_status": ImportStatus.DRAFT,
        "listing_metadata": data.specifications or {},
    }

    if created:
        product = Product(
            id=generate_product_id(),
            slug=await _unique_slug(db, data.title),
            **fields,
        )
        db.add(product)
    else:
        for field, value in fields.items():
            setattr(product, field, value)

    try:
        await db.flush()
    except IntegrityError as e:
        logger.warning("Import of %s hit a unique constraint", external_id)
        raise ConflictError("Product already exists or slug is taken") from e
    await db.refresh(product)

    logger.info(
        "%s imported product %s", "Created" if created else "Updated", product.id,
        extra={"external_id": external_id},
    )
    return product, created


# ── Review queue ─────────────────────────────────────────────────────────────


async def get_next_for_review(
    db: AsyncSession, current_id: str | None = None,
) -> Product | None:
    query = select(Product).where(Product.import_status == ImportStatus.DRAFT)
    if current_id:
        query = query.where(Product.id != current_id)
    result = await db.execute(query.order_by(Product.created_at.asc()).limit(1))
    return result.scalar_one_or_none()


async def apply_review(
    db: AsyncSession, product_id: str, data: ReviewUpdate,
) -> tuple[Product, dict]:
    """Apply reviewer edits; variant prices are normalized before storing."""
    product = await get_by_id(db, product_id)
    changes: dict[str, dict] = {}

    def _set(field: str, value) -> None:
        old_value = getattr(product, field)
        if old_value != value:
            changes[field] = {"old": old_value, "new": value}
            setattr(product, field, value)

    if data.name is not None:
        _set("name", data.name.strip())
    if data.description is not None:
        _set("description", data.description or None)
    if data.images is not None:
        images = clean_image_list(data.images)
        _set("images", images)
        _set("image", images[0] if images else None)
    if data.price is not None:
        _set("price", quantize_price(to_price(data.price)))

    if data.variant_prices:
        variants = product_variants(product)
        for variant in variants:
            if variant.id in data.variant_prices:
                variant.price = to_price(data.variant_prices[variant.id])
        metadata = dict(product.listing_metadata or {})
        metadata["variants"] = [v.model_dump(mode="json") for v in variants]
        _set("listing_metadata", metadata)

    if data.publish:
        _set("import_status", ImportStatus.PUBLISHED)

    await db.flush()
    await db.refresh(product)
    logger.info("Reviewed product %s", product.id, extra={"fields": sorted(changes)})
    return product, changes
