"""Tests for storefront reads, marketplace import and the review queue."""
from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from storefront.core.exceptions import ConflictError, InvalidImportError, NotFoundError
from storefront.core.identifiers import parse_product_id
from storefront.models.dto.product import ImportProductRequest, ReviewUpdate
from storefront.models.orm.product import ImportStatus, Product
from storefront.services.product_service import (
    apply_review,
    build_view,
    delete_product,
    get_next_for_review,
    get_published_product,
    import_product,
    list_products,
    list_published,
    resolve_external_id,
)
from tests.conftest import count_result, rows_result, scalar_result
from tests.factories import make_product


def _import_request(**overrides):
    data = {
        "source_url": "https://item.taobao.com/item.htm?id=123456789",
        "title": "無線耳機 Pro",
        "images": ["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"],
        "original_price": "199",
        "price": "1299",
        "specifications": {
            "variants": [
                {"id": "v1", "specifications": {"顏色": "黑"}, "price": "1299"},
                {"id": "v2", "specifications": {"顏色": "白"}, "price": "1399"},
            ],
        },
    }
    data.update(overrides)
    return ImportProductRequest(**data)


class TestPublishedReads:
    @pytest.mark.asyncio
    async def test_missing_product(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await get_published_product(mock_db, "PROD-20260101-000001")

    @pytest.mark.asyncio
    async def test_query_requires_published_and_active(self, mock_db):
        mock_db.execute.return_value = scalar_result(make_product())
        await get_published_product(mock_db, "PROD-20260101-000001")

        query = str(mock_db.execute.await_args.args[0])
        assert "import_status" in query
        assert "is_active" in query

    def test_build_view_from_stored_variants(self):
        product = make_product(variants=[
            {"id": "v1", "specifications": {"Color": "Red"}, "price": "100"},
            {"id": "v2", "specifications": {"Color": "Blue"}, "price": "150"},
        ])
        view = build_view(product, {"Color": "Blue", "Size": "M"})

        assert view.selection == {"Color": "Blue"}
        assert view.display.price == Decimal("150")

    def test_build_view_without_metadata(self):
        view = build_view(make_product(price=Decimal("49.90")))
        assert view.has_options is False
        assert view.display.price == Decimal("49.90")
        assert view.display.images == ["/img/base-1.jpg", "/img/base-2.jpg"]

    def test_build_view_falls_back_to_single_image(self):
        product = make_product(images=[])
        product.image = "/img/only.jpg"
        assert build_view(product).display.images == ["/img/only.jpg"]


class TestResolveExternalId:
    def test_explicit_id_wins(self):
        assert resolve_external_id("https://item.taobao.com/item.htm?id=1", "abc") == "abc"

    def test_id_from_url(self):
        assert resolve_external_id("https://item.taobao.com/item.htm?id=987", None) == "987"

    def test_url_fallback(self):
        external_id = resolve_external_id("https://shop.example.com/listing/widget", None)
        assert external_id.startswith("url-")
        assert len(external_id) == len("url-") + 50


class TestImportProduct:
    @pytest.mark.asyncio
    async def test_creates_draft(self, mock_db):
        mock_db.execute.side_effect = [scalar_result(None), scalar_result(None)]

        product, created = await import_product(mock_db, _import_request())

        assert created is True
        mock_db.add.assert_called_once()
        assert isinstance(product, Product)
        assert parse_product_id(product.id) is not None
        assert product.slug == "無線耳機-pro"
        assert product.external_id == "123456789"
        assert product.import_status == ImportStatus.DRAFT
        assert product.stock == 0
        assert product.price == Decimal("1299.00")
        assert product.image == "https://img.example.com/1.jpg"
        assert len(product.listing_metadata["variants"]) == 2
        mock_db.refresh.assert_awaited_once_with(product)

    @pytest.mark.asyncio
    async def test_taken_slug_gets_suffix(self, mock_db):
        mock_db.execute.side_effect = [scalar_result(None), scalar_result("PROD-20250101-000001")]

        product, _ = await import_product(mock_db, _import_request())
        assert product.slug.startswith("無線耳機-pro-")
        assert product.slug != "無線耳機-pro"

    @pytest.mark.asyncio
    async def test_reimport_updates_and_keeps_slug(self, mock_db):
        existing = make_product(external_id="123456789", slug="old-slug")
        mock_db.execute.side_effect = [scalar_result(existing)]

        product, created = await import_product(
            mock_db, _import_request(title="Renamed", price="999", specifications=None),
        )

        assert created is False
        assert product is existing
        assert product.slug == "old-slug"
        assert product.name == "Renamed"
        assert product.price == Decimal("999.00")
        assert product.import_status == ImportStatus.DRAFT
        assert product.listing_metadata == {}
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_images_rejected(self, mock_db):
        with pytest.raises(InvalidImportError) as exc_info:
            await import_product(mock_db, _import_request(images=["", "  "]))

        assert exc_info.value.missing == ["images"]
        assert exc_info.value.status_code == 400
        mock_db.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, mock_db):
        with pytest.raises(InvalidImportError) as exc_info:
            await import_product(mock_db, _import_request(title="   "))
        assert exc_info.value.missing == ["title"]

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self, mock_db):
        mock_db.execute.side_effect = [scalar_result(None), scalar_result(None)]
        mock_db.flush.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(ConflictError):
            await import_product(mock_db, _import_request())

    @pytest.mark.parametrize("field", ["price", "original_price"])
    @pytest.mark.parametrize("value", ["1e30", "100000000", "12.345"])
    def test_price_must_fit_stored_precision(self, field, value):
        with pytest.raises(ValidationError):
            _import_request(**{field: value})

    def test_largest_storable_price_accepted(self):
        assert _import_request(price="99999999.99").price == Decimal("99999999.99")

    def test_review_price_must_fit_stored_precision(self):
        with pytest.raises(ValidationError):
            ReviewUpdate(price="1e30")

    def test_non_http_source_url_rejected(self):
        with pytest.raises(ValueError):
            _import_request(source_url="ftp://item.example.com/1")


class TestReviewQueue:
    @pytest.mark.asyncio
    async def test_next_draft(self, mock_db):
        draft = make_product(import_status=ImportStatus.DRAFT)
        mock_db.execute.return_value = scalar_result(draft)

        assert await get_next_for_review(mock_db, "PROD-20260101-000009") is draft
        query = str(mock_db.execute.await_args.args[0])
        assert "ORDER BY products.created_at ASC" in query

    @pytest.mark.asyncio
    async def test_queue_empty(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)
        assert await get_next_for_review(mock_db) is None

    @pytest.mark.asyncio
    async def test_review_missing_product(self, mock_db):
        with pytest.raises(NotFoundError):
            await apply_review(mock_db, "PROD-20260101-000001", ReviewUpdate(publish=True))

    @pytest.mark.asyncio
    async def test_variant_prices_and_publish(self, mock_db):
        product = make_product(
            import_status=ImportStatus.DRAFT,
            variants=[
                {"id": "v1", "specifications": {"Color": "Red"}, "price": "100"},
                {"id": "v2", "specifications": {"Color": "Blue"}, "price": "150"},
            ],
        )
        mock_db.get.return_value = product

        update = ReviewUpdate(variant_prices={"v1": "89.5", "v2": "bad", "v9": 1}, publish=True)
        product, changes = await apply_review(mock_db, product.id, update)

        stored = product.listing_metadata["variants"]
        assert [v["price"] for v in stored] == ["89.5", "0"]
        assert product.import_status == ImportStatus.PUBLISHED
        assert set(changes) == {"listing_metadata", "import_status"}
        mock_db.flush.assert_awaited()

    @pytest.mark.asyncio
    async def test_images_update_sets_primary(self, mock_db):
        product = make_product()
        mock_db.get.return_value = product

        product, changes = await apply_review(
            mock_db, product.id, ReviewUpdate(images=["", "/img/new.jpg"], price="10"),
        )

        assert product.images == ["/img/new.jpg"]
        assert product.image == "/img/new.jpg"
        assert product.price == Decimal("10.00")
        assert {"images", "image", "price"} <= set(changes)

    @pytest.mark.asyncio
    async def test_unchanged_fields_not_reported(self, mock_db):
        product = make_product()
        mock_db.get.return_value = product

        _, changes = await apply_review(mock_db, product.id, ReviewUpdate(name=product.name))
        assert changes == {}


class TestCatalogListing:
    @pytest.mark.asyncio
    async def test_published_listing(self, mock_db):
        newer = make_product(product_id="PROD-20260102-000002", slug="newer")
        older = make_product()
        mock_db.execute.side_effect = [count_result(2), rows_result([newer, older])]

        products, total = await list_published(mock_db)

        assert total == 2
        assert products == [newer, older]
        count_query = str(mock_db.execute.await_args_list[0].args[0])
        list_query = str(mock_db.execute.await_args_list[1].args[0])
        assert "count" in count_query.lower()
        for query in (count_query, list_query):
            assert "products.is_active IS true" in query
            assert "products.import_status = :import_status_1" in query
        assert "ORDER BY products.created_at DESC" in list_query

    @pytest.mark.asyncio
    async def test_empty_listing(self, mock_db):
        mock_db.execute.side_effect = [count_result(None), rows_result([])]
        assert await list_published(mock_db) == ([], 0)

    @pytest.mark.asyncio
    async def test_admin_listing_filters(self, mock_db):
        draft = make_product(import_status=ImportStatus.DRAFT)
        mock_db.execute.side_effect = [count_result(1), rows_result([draft])]

        products, total = await list_products(
            mock_db, status=ImportStatus.DRAFT, category="Electronics", search="lamp",
        )

        assert (products, total) == ([draft], 1)
        list_query = str(mock_db.execute.await_args_list[1].args[0]).lower()
        assert "products.import_status" in list_query
        assert "products.category" in list_query
        assert "lower(products.name) like lower" in list_query
        assert "is_active" not in list_query

    @pytest.mark.asyncio
    async def test_admin_listing_without_filters(self, mock_db):
        mock_db.execute.side_effect = [count_result(0), rows_result([])]
        assert await list_products(mock_db) == ([], 0)
        list_query = str(mock_db.execute.await_args_list[1].args[0])
        assert "WHERE" in list_query
        assert "import_status" not in list_query.split("WHERE", 1)[1]


class TestDeleteProduct:
    @pytest.mark.asyncio
    async def test_delete(self, mock_db):
        product = make_product()
        mock_db.get.return_value = product

        assert await delete_product(mock_db, product.id) == "Wireless Earphones"
        mock_db.delete.assert_awaited_once_with(product)
        mock_db.flush.assert_awaited()

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db):
        with pytest.raises(NotFoundError):
            await delete_product(mock_db, "PROD-20260101-000404")
        mock_db.delete.assert_not_called()
