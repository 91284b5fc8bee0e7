from storefront.models.dto.product import CatalogProduct, Variant, parse_variants
from storefront.models.orm.product import Product


def product_variants(product: Product) -> list[Variant]:
    metadata = product.listing_metadata if isinstance(product.listing_metadata, dict) else {}
    return parse_variants(metadata.get("variants"))


def product_images(product: Product) -> list[str]:
    images = [i for i in (product.images or []) if isinstance(i, str) and i]
    if not images and product.image:
        images = [product.image]
    return images


def product_to_catalog(product: Product) -> CatalogProduct:
    return CatalogProduct(
        id=product.id,
        name=product.name,
        base_price=product.price,
        base_images=product_images(product),
        variants=product_variants(product),
    )


def product_to_review_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "image": product.image,
        "images": product_images(product),
        "price": product.price,
        "original_price": product.original_price,
        "source_url": product.source_url,
        "external_id": product.external_id,
        "import_status": product.import_status.value,
        "is_active": product.is_active,
        "variants": product_variants(product),
        "updated_at": product.updated_at,
    }


def product_to_summary_dict(product: Product, display_price, has_options: bool) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "image": product.image,
        "images": product_images(product),
        "category": product.category,
        "stock": product.stock,
        "price": product.price,
        "display_price": display_price,
        "has_options": has_options,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }


def product_to_admin_summary_dict(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "price": product.price,
        "category": product.category,
        "import_status": product.import_status.value,
        "is_active": product.is_active,
        "images": product_images(product),
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
