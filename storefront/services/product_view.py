import logging

from storefront.models.dto.cart import LineItemInput
from storefront.models.dto.product import (
    CatalogProduct,
    ProductDisplay,
    Resolution,
    Selection,
    SpecificationIndex,
)
from storefront.services.variant_service import (
    build_specification_index,
    project_display,
    prune_selection,
    resolve_variant,
    toggle_selection,
)

logger = logging.getLogger(__name__)


class ProductView:
    """Selection state for one product page.

    Holds the shopper's selection and the gallery position, and re-runs
    resolution and projection after every event. The presentation layer reads
    ``display``/``state()`` and never computes prices itself.
    """

    def __init__(self, product: CatalogProduct, selection: Selection | None = None):
        self.show_product(product)
        if selection:
            self.selection = prune_selection(self.index, selection)
            self._refresh()

    def show_product(self, product: CatalogProduct) -> None:
        self.product = product
        self.index: SpecificationIndex = build_specification_index(product.variants)
        self.selection: Selection = {}
        self.resolution = Resolution()
        self.image_index = 0
        self._refresh()

    @property
    def has_options(self) -> bool:
        return bool(self.index)

    def toggle(self, key: str, value: str) -> None:
        if key not in self.index or value not in self.index[key]:
            logger.debug("Ignoring unknown option %s=%s on %s", key, value, self.product.id)
            return
        self.selection = toggle_selection(self.selection, key, value)
        self._refresh()

    def select_image(self, position: int) -> None:
        last = len(self.display.images) - 1
        self.image_index = max(0, min(position, last)) if last >= 0 else 0

    def _refresh(self) -> None:
        previous = self.resolution.variant
        self.resolution = resolve_variant(self.product.variants, self.index, self.selection)
        self.display: ProductDisplay = project_display(
            self.product, self.resolution.variant, self.resolution.is_fully_selected,
        )
        current = self.resolution.variant
        previous_id = previous.id if previous else None
        current_id = current.id if current else None
        if previous_id != current_id:
            # Positions are meaningless across different image sets
            self.image_index = 0

    @property
    def current_image(self) -> str | None:
        if not self.display.images:
            return None
        return self.display.images[self.image_index]

    def line_item(self, quantity: int = 1) -> LineItemInput:
        """Add-to-cart payload for the current state, priced as displayed."""
        variant = self.resolution.variant
        return LineItemInput(
            product_id=self.product.id,
            name=self.product.name,
            price=self.display.price,
            image=self.display.images[0] if self.display.images else None,
            quantity=quantity,
            variant_id=variant.id if variant else None,
            specifications=dict(self.selection) if self.has_options and self.selection else None,
        )

    def state(self) -> dict:
        variant = self.resolution.variant
        return {
            "product_id": self.product.id,
            "selection": dict(self.selection),
            "is_fully_selected": self.resolution.is_fully_selected,
            "variant_id": variant.id if variant else None,
            "sku": variant.sku if variant else None,
            "price": self.display.price,
            "images": list(self.display.images),
            "image_index": self.image_index,
        }
