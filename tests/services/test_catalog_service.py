"""
Tests for CatalogService and CatalogSelector.

Covers:
- Product create / update / delete and their validation
- Delete blocked by batches
- Rider create / delete, including distribution cascade
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from distro_kernel.domain.dtos import ProductCategory
from distro_kernel.exceptions import (
    ProductInUseError,
    ProductNotFoundError,
    RiderNotFoundError,
    ValidationError,
)
from distro_kernel.selectors.catalog_selector import CatalogSelector
from distro_kernel.selectors.distribution_selector import DistributionSelector


class TestProducts:
    def test_create_product(self, catalog_service, session):
        product = catalog_service.create_product("  Matcha ", "primary", "18000")

        assert product.name == "Matcha"
        assert product.category == ProductCategory.PRIMARY
        assert product.price == Decimal("18000")
        assert CatalogSelector(session).get_product(product.id) == product

    def test_blank_name_rejected(self, catalog_service):
        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product("   ")
        assert exc_info.value.field == "name"

    def test_negative_price_rejected(self, catalog_service):
        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product("Taro", price=Decimal("-1"))
        assert exc_info.value.field == "price"

    def test_unknown_category_rejected(self, catalog_service):
        with pytest.raises(ValidationError) as exc_info:
            catalog_service.create_product("Taro", category="drink")
        assert exc_info.value.field == "category"

    def test_duplicate_name_rejected(self, catalog_service, create_product):
        create_product("Taro")
        with pytest.raises(ValidationError):
            catalog_service.create_product("Taro")

    def test_update_product(self, catalog_service, create_product):
        product = create_product("Coklat", price="12000")

        updated = catalog_service.update_product(
            product.id, name="Coklat Panas", category=ProductCategory.ADDON, price=14000
        )

        assert updated.name == "Coklat Panas"
        assert updated.category == ProductCategory.ADDON
        assert updated.price == Decimal("14000")

    def test_update_to_existing_name_rejected(self, catalog_service, create_product):
        create_product("Taro")
        other = create_product("Matcha")
        with pytest.raises(ValidationError):
            catalog_service.update_product(other.id, name="Taro")

    def test_update_unknown_product(self, catalog_service):
        with pytest.raises(ProductNotFoundError):
            catalog_service.update_product(uuid4(), price=1)

    def test_delete_unused_product(self, catalog_service, create_product, session):
        product = create_product("Bubblegum")
        catalog_service.delete_product(product.id)
        assert CatalogSelector(session).get_product(product.id) is None

    def test_delete_product_with_batches_blocked(
        self, catalog_service, create_product, create_batch
    ):
        product = create_product("Kopi Aren")
        create_batch(product)
        create_batch(product)

        with pytest.raises(ProductInUseError) as exc_info:
            catalog_service.delete_product(product.id)
        assert exc_info.value.batch_count == 2

    def test_list_products_ordered_by_name(self, create_product, session):
        create_product("Taro")
        create_product("Coklat")
        create_product("Matcha")

        names = [p.name for p in CatalogSelector(session).list_products()]
        assert names == ["Coklat", "Matcha", "Taro"]

    def test_get_product_by_name(self, create_product, session):
        product = create_product("Matcha")
        assert CatalogSelector(session).get_product_by_name("Matcha").id == product.id
        assert CatalogSelector(session).get_product_by_name("Nope") is None


class TestRiders:
    def test_create_and_count(self, catalog_service, session):
        catalog_service.create_rider("Sari", phone=" 0812 ")
        catalog_service.create_rider("Andi")

        selector = CatalogSelector(session)
        assert selector.count_riders() == 2
        riders = selector.list_riders()
        assert [r.name for r in riders] == ["Andi", "Sari"]
        assert riders[1].phone == "0812"

    def test_blank_rider_name_rejected(self, catalog_service):
        with pytest.raises(ValidationError):
            catalog_service.create_rider("")

    def test_update_rider(self, catalog_service, create_rider):
        rider = create_rider("Budi")
        updated = catalog_service.update_rider(rider.id, name="Budi S", phone="0813")
        assert (updated.name, updated.phone) == ("Budi S", "0813")

    def test_delete_rider_removes_distributions(
        self,
        catalog_service,
        distribution_ledger,
        create_product,
        create_rider,
        create_batch,
        session,
        captured_logs,
    ):
        rider = create_rider()
        batch = create_batch(create_product())
        first = distribution_ledger.allocate(rider.id, batch.id, 10)
        distribution_ledger.allocate(rider.id, batch.id, 5)
        distribution_ledger.record_outcome(first.id, "sell", 10)

        deleted = catalog_service.delete_rider(rider.id)

        assert deleted == 2
        assert CatalogSelector(session).get_rider(rider.id) is None
        assert DistributionSelector(session).list_all() == []
        warnings = [
            r for r in captured_logs() if r["message"] == "rider_deleted_with_open_distributions"
        ]
        assert warnings[0]["open_distributions"] == 1

    def test_delete_unknown_rider(self, catalog_service):
        with pytest.raises(RiderNotFoundError):
            catalog_service.delete_rider(uuid4())
