"""
Tests for session_scope(): callers own the transaction, services only flush.
"""

import pytest

from distro_kernel.db.engine import session_scope
from distro_kernel.domain.dtos import ProductCategory
from distro_kernel.exceptions import InsufficientStockError
from distro_kernel.selectors.batch_selector import BatchSelector
from distro_kernel.selectors.catalog_selector import CatalogSelector
from distro_kernel.selectors.distribution_selector import DistributionSelector
from distro_kernel.services import BatchLedgerService, CatalogService, DistributionLedgerService


@pytest.fixture
def committed_stock(session_factory, deterministic_clock):
    """A committed rider and 10-unit batch; rows are removed by session_factory teardown."""
    sess = session_factory()
    catalog = CatalogService(sess, deterministic_clock)
    product = catalog.create_product("Taro", ProductCategory.PRIMARY, 12000)
    rider = catalog.create_rider("Andi")
    batch = BatchLedgerService(sess, deterministic_clock).create_batch(
        product.id, "2024-05-01", "2024-05-03", 10
    )
    sess.commit()
    return rider.id, batch.id


class TestSessionScope:
    def test_commits_on_success(self, committed_stock, session_factory, deterministic_clock):
        rider_id, batch_id = committed_stock

        with session_scope() as sess:
            DistributionLedgerService(sess, deterministic_clock).allocate(rider_id, batch_id, 4)

        check = session_factory()
        assert BatchSelector(check).get(batch_id).current_quantity == 6
        assert len(DistributionSelector(check).list_all()) == 1

    def test_rolls_back_whole_unit_on_error(
        self, committed_stock, session_factory, deterministic_clock, captured_logs
    ):
        rider_id, batch_id = committed_stock

        with pytest.raises(InsufficientStockError):
            with session_scope() as sess:
                ledger = DistributionLedgerService(sess, deterministic_clock)
                ledger.allocate(rider_id, batch_id, 4)
                ledger.allocate(rider_id, batch_id, 7)

        check = session_factory()
        assert BatchSelector(check).get(batch_id).current_quantity == 10
        assert DistributionSelector(check).list_all() == []
        [rollback] = [r for r in captured_logs() if r["message"] == "transaction_rolled_back"]
        assert rollback["error"]["code"] == "INSUFFICIENT_STOCK"
        assert (rollback["error"]["requested"], rollback["error"]["available"]) == (7, 6)

    def test_services_never_commit(self, committed_stock, session_factory, deterministic_clock):
        rider_id, _ = committed_stock
        sess = session_factory()
        CatalogService(sess, deterministic_clock).create_rider("Sari")
        sess.rollback()

        check = session_factory()
        assert [r.name for r in CatalogSelector(check).list_riders()] == ["Andi"]
