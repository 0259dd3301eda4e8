"""
Tests for the read-side services: reconciliation, inventory summary,
production planning and period reports.

All of them run over one small trading day:

    Kopi Aren (primary, 15000)  batch of 100
    Boba      (addon,   3000)   batch of 50

    Budi: 30 Kopi Aren -> sold 20, returned 5   (5 still out)
          5 Boba       -> sold 5
    Sari: 30 Kopi Aren -> sold 30
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from distro_engines.production_needs import StockStatus
from distro_engines.reconciliation import ReconciliationStatus
from distro_kernel.domain.dtos import BatchInfo, DistributionInfo, ProductCategory, RiderInfo
from distro_kernel.domain.windows import DateWindow, WindowKind
from distro_kernel.exceptions import DistributionNotFoundError
from distro_kernel.selectors.batch_selector import BatchSelector
from distro_services import (
    InventorySummaryService,
    ProductionPlanningService,
    ReconciliationService,
    ReportService,
)


@dataclass
class TradingDay:
    budi: RiderInfo
    sari: RiderInfo
    kopi_batch: BatchInfo
    boba_batch: BatchInfo
    budi_kopi: DistributionInfo
    budi_boba: DistributionInfo
    sari_kopi: DistributionInfo


@pytest.fixture
def trading_day(distribution_ledger, create_product, create_rider, create_batch):
    kopi = create_product("Kopi Aren", price=15000)
    boba = create_product("Boba", ProductCategory.ADDON, price=3000)
    budi = create_rider("Budi")
    sari = create_rider("Sari")
    kopi_batch = create_batch(kopi, quantity=100)
    boba_batch = create_batch(boba, quantity=50)

    budi_kopi = distribution_ledger.allocate(budi.id, kopi_batch.id, 30)
    distribution_ledger.record_outcome(budi_kopi.id, "sell", 20)
    distribution_ledger.record_outcome(budi_kopi.id, "return", 5)
    budi_boba = distribution_ledger.allocate(budi.id, boba_batch.id, 5)
    distribution_ledger.record_outcome(budi_boba.id, "sell", 5)
    sari_kopi = distribution_ledger.allocate(sari.id, kopi_batch.id, 30)
    distribution_ledger.record_outcome(sari_kopi.id, "sell", 30)

    return TradingDay(budi, sari, kopi_batch, boba_batch, budi_kopi, budi_boba, sari_kopi)


class TestReconciliationService:
    def test_whole_ledger(self, session, trading_day):
        summary = ReconciliationService(session).reconcile_window()

        assert summary.item_count == 3
        assert summary.total_distributed == 65
        assert summary.total_sold == 55
        assert summary.total_returned == 5
        assert summary.total_unaccounted == 5
        assert summary.accounting_percentage == 94
        assert [i.distribution_id for i in summary.pending] == [trading_day.budi_kopi.id]
        assert len(summary.complete) == 2
        assert summary.mismatched == ()

    def test_rider_filter(self, session, trading_day):
        summary = ReconciliationService(session).reconcile_window(rider_id=trading_day.sari.id)

        assert summary.item_count == 1
        assert summary.items[0].status == ReconciliationStatus.COMPLETE
        assert summary.accounting_percentage == 100

    def test_window_filter(self, session, trading_day, distribution_ledger, deterministic_clock):
        deterministic_clock.advance_days(1)
        distribution_ledger.allocate(trading_day.sari.id, trading_day.kopi_batch.id, 10)

        service = ReconciliationService(session)
        assert service.reconcile_window(DateWindow.daily("2024-05-01")).item_count == 3
        assert service.reconcile_window(DateWindow.daily("2024-05-02")).item_count == 1

    def test_empty_window(self, session):
        summary = ReconciliationService(session).reconcile_window(DateWindow.daily("2024-05-01"))
        assert summary.item_count == 0
        assert summary.accounting_percentage == 0

    def test_single_distribution(self, session, trading_day):
        item = ReconciliationService(session).reconcile_distribution(trading_day.budi_kopi.id)

        assert item.accounted == 25
        assert item.unaccounted == 5
        assert item.accounting_percentage == 83
        assert item.status == ReconciliationStatus.PENDING

    def test_unknown_distribution(self, session):
        with pytest.raises(DistributionNotFoundError):
            ReconciliationService(session).reconcile_distribution(uuid4())


class TestInventorySummaryService:
    def test_per_product_lines(self, session, trading_day):
        lines = {line.product_name: line for line in InventorySummaryService(session).summarize()}

        kopi = lines["Kopi Aren"]
        assert kopi.total_in_inventory == 45
        assert kopi.allocatable_in_inventory == 45
        assert kopi.total_distributed == 60
        assert kopi.total_sold == 50
        assert kopi.total_returned == 5
        assert kopi.in_rider == 5
        assert kopi.total_on_hand == 50

        boba = lines["Boba"]
        assert boba.category == ProductCategory.ADDON
        assert boba.total_in_inventory == 45
        assert boba.in_rider == 0

    def test_line_for(self, session, trading_day):
        service = InventorySummaryService(session)
        line = service.line_for(trading_day.kopi_batch.product_id)
        assert line.batch_ids == (trading_day.kopi_batch.id,)
        assert service.line_for(uuid4()) is None

    def test_reads_do_not_change_state(self, session, trading_day):
        service = InventorySummaryService(session)
        first = service.summarize()
        ReconciliationService(session).reconcile_window()
        second = service.summarize()

        assert first == second
        assert BatchSelector(session).get(trading_day.kopi_batch.id).current_quantity == 45


class TestProductionPlanningService:
    def test_plan_uses_rider_roster(self, session, trading_day, default_policy):
        plan = ProductionPlanningService(session, default_policy).plan()

        assert plan.rider_count == 2
        kopi, boba = plan.needs
        assert kopi.product_name == "Kopi Aren"
        assert kopi.total_allocation == 60
        assert kopi.buffer_target == 20
        assert kopi.needed == 35
        assert kopi.status == StockStatus.LOW
        assert boba.product_name == "Boba"
        assert boba.total_needed == 30
        assert boba.status == StockStatus.SURPLUS

    def test_no_riders_falls_back_to_default(self, session, create_product, default_policy, captured_logs):
        create_product("Matcha")

        plan = ProductionPlanningService(session, default_policy).plan()

        assert plan.rider_count == default_policy.default_rider_count
        assert plan.needs[0].needed == 40
        assert any(r["message"] == "planning_without_riders" for r in captured_logs())

    def test_returns_to_destroyed_batch_are_not_planned_as_stock(
        self, session, trading_day, batch_ledger, distribution_ledger, default_policy
    ):
        batch_ledger.destroy_batch(trading_day.kopi_batch.id, "power cut overnight")
        distribution_ledger.record_outcome(trading_day.budi_kopi.id, "return", 5)

        line = InventorySummaryService(session).line_for(trading_day.kopi_batch.product_id)
        assert line.total_in_inventory == 5
        assert line.allocatable_in_inventory == 0

        plan = ProductionPlanningService(session, default_policy).plan()
        kopi = next(n for n in plan.needs if n.product_name == "Kopi Aren")
        assert kopi.current_stock == 0
        assert kopi.needed == 80


class TestReportService:
    def test_daily_report(self, session, trading_day, deterministic_clock):
        report = ReportService(session, deterministic_clock).build_report(
            DateWindow.daily(date(2024, 5, 1))
        )

        assert report.total_produced == 150
        assert report.total_distributed == 65
        assert report.total_sold == 55
        assert report.total_returned == 5
        assert report.total_primary_units == 50
        assert report.total_addon_units == 45
        assert report.total_revenue == Decimal("765000")
        assert report.rider_count == 2

    def test_rider_sales_ordered_by_revenue(self, session, trading_day, deterministic_clock):
        report = ReportService(session, deterministic_clock).build_report(
            DateWindow.daily(date(2024, 5, 1))
        )

        sari, budi = report.rider_sales
        assert (sari.rider_name, sari.revenue) == ("Sari", Decimal("450000"))
        assert (budi.rider_name, budi.revenue) == ("Budi", Decimal("315000"))
        assert budi.units_sold == 25
        assert budi.primary_units_sold == 20
        assert budi.units_returned == 5

    def test_window_outside_activity(self, session, trading_day, deterministic_clock):
        report = ReportService(session, deterministic_clock).build_report(
            DateWindow.daily(date(2024, 4, 30))
        )

        assert report.productions == ()
        assert report.distributions == ()
        assert report.total_revenue == Decimal("0")
        # Inventory is a snapshot, not windowed.
        assert report.total_primary_units == 50

    def test_named_window_defaults_to_today(self, session, trading_day, deterministic_clock):
        report = ReportService(session, deterministic_clock).build_report_for("monthly")

        assert report.window.kind == WindowKind.MONTHLY
        assert report.window.start == date(2024, 5, 1)
        assert report.window.end == date(2024, 5, 31)
        assert report.total_distributed == 65

    def test_custom_window(self, session, trading_day, deterministic_clock):
        report = ReportService(session, deterministic_clock).build_report_for(
            "custom", start="2024-04-28", end="2024-05-04"
        )
        assert report.window.days == 7
        assert len(report.distributions) == 3
