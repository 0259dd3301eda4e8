"""
distro_services.report_service -- period report data.

Responsibility:
    Assemble everything a daily / weekly / monthly / yearly report shows:
    production in the window, distributions in the window, the current
    inventory position, reconciliation of the window and per-rider sales
    with revenue.  Rendering (PDF, spreadsheet) is left to callers.

Architecture position:
    Services -- orchestration over engines + kernel selectors.  Read only.

Invariants enforced:
    - revenue = sold_quantity * product price, summed per rider in Decimal.
    - Rider rows are ordered by revenue descending, then rider name.
    - Inventory totals are a snapshot at build time, not as of window end.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from distro_engines.inventory_summary import InventorySummaryLine
from distro_engines.reconciliation import ReconciliationSummary, reconcile_all
from distro_kernel.domain.clock import Clock, SystemClock
from distro_kernel.domain.dtos import BatchInfo, DistributionInfo, ProductCategory
from distro_kernel.domain.windows import DateWindow, WindowKind
from distro_kernel.logging_config import get_logger
from distro_kernel.selectors.batch_selector import BatchSelector
from distro_kernel.selectors.distribution_selector import DistributionSelector
from distro_services.inventory_summary_service import InventorySummaryService

logger = get_logger("services.report")


@dataclass(frozen=True)
class RiderSales:
    rider_id: UUID
    rider_name: str
    units_sold: int
    primary_units_sold: int
    units_returned: int
    units_rejected: int
    revenue: Decimal


@dataclass(frozen=True)
class PeriodReport:
    window: DateWindow
    productions: tuple[BatchInfo, ...]
    distributions: tuple[DistributionInfo, ...]
    inventory: tuple[InventorySummaryLine, ...]
    reconciliation: ReconciliationSummary
    rider_sales: tuple[RiderSales, ...]
    total_primary_units: int
    total_addon_units: int

    @property
    def total_produced(self) -> int:
        return sum(b.initial_quantity for b in self.productions)

    @property
    def total_distributed(self) -> int:
        return sum(d.quantity for d in self.distributions)

    @property
    def total_sold(self) -> int:
        return self.reconciliation.total_sold

    @property
    def total_returned(self) -> int:
        return self.reconciliation.total_returned

    @property
    def total_rejected(self) -> int:
        return self.reconciliation.total_rejected

    @property
    def total_revenue(self) -> Decimal:
        return sum((r.revenue for r in self.rider_sales), Decimal("0"))

    @property
    def rider_count(self) -> int:
        return len(self.rider_sales)


def rider_sales(distributions: Iterable[DistributionInfo]) -> list[RiderSales]:
    """Group distributions by rider; highest revenue first."""
    grouped: dict[UUID, list[DistributionInfo]] = {}
    for dist in distributions:
        grouped.setdefault(dist.rider_id, []).append(dist)

    rows = []
    for rider_id, dists in grouped.items():
        rows.append(
            RiderSales(
                rider_id=rider_id,
                rider_name=dists[0].rider_name,
                units_sold=sum(d.sold_quantity for d in dists),
                primary_units_sold=sum(
                    d.sold_quantity
                    for d in dists
                    if d.product_category == ProductCategory.PRIMARY
                ),
                units_returned=sum(d.returned_quantity for d in dists),
                units_rejected=sum(d.rejected_quantity for d in dists),
                revenue=sum(
                    (Decimal(d.sold_quantity) * d.product_price for d in dists),
                    Decimal("0"),
                ),
            )
        )
    rows.sort(key=lambda r: (-r.revenue, r.rider_name))
    return rows


class ReportService:
    """Builds PeriodReport objects."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._batches = BatchSelector(session)
        self._distributions = DistributionSelector(session)
        self._inventory = InventorySummaryService(session)
        self._clock = clock or SystemClock()

    def build_report(self, window: DateWindow) -> PeriodReport:
        productions = tuple(self._batches.list_produced_between(window))
        distributions = tuple(self._distributions.list_by_date_window(window))
        inventory = tuple(self._inventory.summarize())

        report = PeriodReport(
            window=window,
            productions=productions,
            distributions=distributions,
            inventory=inventory,
            reconciliation=reconcile_all(distributions),
            rider_sales=tuple(rider_sales(distributions)),
            total_primary_units=sum(
                line.total_on_hand
                for line in inventory
                if line.category == ProductCategory.PRIMARY
            ),
            total_addon_units=sum(
                line.total_on_hand
                for line in inventory
                if line.category == ProductCategory.ADDON
            ),
        )

        logger.info(
            "period_report_built",
            extra={
                "window_kind": window.kind.value,
                "window_start": str(window.start),
                "window_end": str(window.end),
                "batches": len(productions),
                "distributions": len(distributions),
            },
        )
        return report

    def build_report_for(
        self,
        kind: WindowKind | str,
        anchor: date | str | None = None,
        start: date | str | None = None,
        end: date | str | None = None,
    ) -> PeriodReport:
        """Report for a named window; the anchor defaults to today."""
        if WindowKind(kind) != WindowKind.CUSTOM and anchor is None:
            anchor = self._clock.today()
        return self.build_report(DateWindow.for_kind(kind, anchor=anchor, start=start, end=end))
