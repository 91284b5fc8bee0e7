"""Specification index, variant resolution and display-price projection.

Everything here is a pure function over already-normalized catalog data.
Malformed or inconsistent catalogs degrade to a displayable answer instead of
raising: a selection that matches nothing falls back to the cheapest variant
price, and stale selection keys are ignored.
"""
import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from storefront.models.dto.product import (
    CatalogProduct,
    ProductDisplay,
    Resolution,
    Selection,
    SpecificationIndex,
    Variant,
)

logger = logging.getLogger(__name__)


def build_specification_index(variants: Iterable[Variant]) -> SpecificationIndex:
    index: SpecificationIndex = {}
    for variant in variants:
        for key, value in variant.specifications.items():
            values = index.setdefault(key, [])
            if value not in values:
                values.append(value)
    return index


def prune_selection(index: SpecificationIndex, selection: Mapping[str, str]) -> Selection:
    """Drop keys and values that the current product does not offer."""
    return {
        key: value
        for key, value in selection.items()
        if key in index and value in index[key]
    }


def is_fully_selected(index: SpecificationIndex, selection: Mapping[str, str]) -> bool:
    if not index:
        return False
    return all(selection.get(key) in values for key, values in index.items())


def toggle_selection(selection: Mapping[str, str], key: str, value: str) -> Selection:
    """Pick ``value`` for ``key``; picking the current value again un-picks it."""
    updated = dict(selection)
    if updated.get(key) == value:
        del updated[key]
    else:
        updated[key] = value
    return updated


def _matches(variant: Variant, index: SpecificationIndex, selection: Mapping[str, str]) -> bool:
    return all(variant.specifications.get(key) == selection[key] for key in index)


def resolve_variant(
    variants: list[Variant],
    index: SpecificationIndex,
    selection: Mapping[str, str],
) -> Resolution:
    if not is_fully_selected(index, selection):
        return Resolution(variant=None, is_fully_selected=False)

    matches = [v for v in variants if _matches(v, index, selection)]
    if not matches:
        logger.info("No variant matches a full selection", extra={"selection": dict(selection)})
        return Resolution(variant=None, is_fully_selected=True)
    if len(matches) > 1:
        # First in list order wins for duplicate specification combinations
        logger.warning(
            "Selection matches %d variants, using %s",
            len(matches), matches[0].id,
        )
    return Resolution(variant=matches[0], is_fully_selected=True)


def cheapest_price(variants: list[Variant]) -> Decimal | None:
    if not variants:
        return None
    return min(v.price for v in variants)


def variant_images(variant: Variant) -> list[str]:
    if variant.images:
        return list(variant.images)
    if variant.image:
        return [variant.image]
    return []


def project_display(
    product: CatalogProduct,
    resolved_variant: Variant | None,
    is_fully_selected: bool,
) -> ProductDisplay:
    """Price and gallery the shopper should see for the current resolution.

    ``is_fully_selected`` does not change the outcome on its own: a full
    selection without a match is displayed exactly like a partial one.
    """
    base_images = list(product.base_images)

    if not product.variants:
        return ProductDisplay(price=product.base_price, images=base_images)

    if resolved_variant is None:
        return ProductDisplay(price=cheapest_price(product.variants), images=base_images)

    return ProductDisplay(
        price=resolved_variant.price,
        images=variant_images(resolved_variant) or base_images,
    )
