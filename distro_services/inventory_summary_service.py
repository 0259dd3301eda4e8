"""InventorySummaryService -- loads batches and distributions and summarises them per product."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from distro_engines.inventory_summary import InventorySummaryLine, summarize_inventory
from distro_kernel.selectors.batch_selector import BatchSelector
from distro_kernel.selectors.distribution_selector import DistributionSelector


class InventorySummaryService:
    def __init__(self, session: Session):
        self._batches = BatchSelector(session)
        self._distributions = DistributionSelector(session)

    def summarize(self) -> list[InventorySummaryLine]:
        return summarize_inventory(
            self._batches.list_batches(),
            self._distributions.list_all(),
        )

    def line_for(self, product_id: UUID) -> InventorySummaryLine | None:
        return next((line for line in self.summarize() if line.product_id == product_id), None)
