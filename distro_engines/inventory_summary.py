"""
distro_engines.inventory_summary -- per-product stock position.

Responsibility:
    Group batches by product and fold the distributions of those batches
    into one InventorySummaryLine per product: warehouse stock, quantities
    out with riders and their outcomes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by InventorySummaryService, the production planner and the
    period report.

Invariants enforced:
    - Only products with at least one batch appear.
    - Distributions whose batch is not among the inputs are ignored.
    - total_in_inventory is the sum of current_quantity over every batch,
      destroyed ones included, so a return credited to a destroyed batch
      shows up there.  allocatable_in_inventory counts only batches that
      can still be allocated from and is what production planning uses.
    - Line order is the order in which products first appear in the
      (FEFO-ordered) batch input.
    - Purity: identical inputs give identical outputs.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from distro_engines.tracer import traced_engine
from distro_kernel.domain.dtos import BatchInfo, DistributionInfo, ProductCategory


@dataclass(frozen=True)
class InventorySummaryLine:
    product_id: UUID
    product_name: str
    category: ProductCategory
    total_in_inventory: int
    allocatable_in_inventory: int
    total_distributed: int
    total_sold: int
    total_returned: int
    total_rejected: int
    total_warehouse_rejected: int
    batch_ids: tuple[UUID, ...]

    @property
    def in_rider(self) -> int:
        """Units handed out and not yet sold, returned or rejected."""
        return self.total_distributed - self.total_sold - self.total_returned - self.total_rejected

    @property
    def total_on_hand(self) -> int:
        """Warehouse stock plus stock still with riders."""
        return self.total_in_inventory + self.in_rider


class _Accumulator:
    __slots__ = (
        "product_id", "product_name", "category", "in_inventory", "allocatable",
        "distributed", "sold", "returned", "rejected", "warehouse_rejected", "batch_ids",
    )

    def __init__(self, batch: BatchInfo):
        self.product_id = batch.product_id
        self.product_name = batch.product_name
        self.category = batch.product_category
        self.in_inventory = 0
        self.allocatable = 0
        self.distributed = 0
        self.sold = 0
        self.returned = 0
        self.rejected = 0
        self.warehouse_rejected = 0
        self.batch_ids: list[UUID] = []

    def freeze(self) -> InventorySummaryLine:
        return InventorySummaryLine(
            product_id=self.product_id,
            product_name=self.product_name,
            category=self.category,
            total_in_inventory=self.in_inventory,
            allocatable_in_inventory=self.allocatable,
            total_distributed=self.distributed,
            total_sold=self.sold,
            total_returned=self.returned,
            total_rejected=self.rejected,
            total_warehouse_rejected=self.warehouse_rejected,
            batch_ids=tuple(self.batch_ids),
        )


@traced_engine("inventory_summary", "1.0")
def summarize_inventory(
    batches: Iterable[BatchInfo],
    distributions: Iterable[DistributionInfo],
) -> list[InventorySummaryLine]:
    """Build one summary line per product that has batches."""
    by_product: dict[UUID, _Accumulator] = {}
    product_of_batch: dict[UUID, UUID] = {}

    for batch in batches:
        acc = by_product.get(batch.product_id)
        if acc is None:
            acc = by_product[batch.product_id] = _Accumulator(batch)
        acc.in_inventory += batch.current_quantity
        if not batch.is_destroyed:
            acc.allocatable += batch.current_quantity
        acc.warehouse_rejected += batch.warehouse_rejected_quantity
        acc.batch_ids.append(batch.id)
        product_of_batch[batch.id] = batch.product_id

    for dist in distributions:
        product_id = product_of_batch.get(dist.batch_id)
        if product_id is None:
            continue
        acc = by_product[product_id]
        acc.distributed += dist.quantity
        acc.sold += dist.sold_quantity
        acc.returned += dist.returned_quantity
        acc.rejected += dist.rejected_quantity

    return [acc.freeze() for acc in by_product.values()]
