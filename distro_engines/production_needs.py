"""
distro_engines.production_needs -- how much of each product to make next.

Responsibility:
    For every catalog product, compare warehouse stock against what the
    rider fleet will take under the allocation policy plus a buffer, and
    classify the product as low, balanced or surplus.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by distro_services.production_planning_service.

Invariants enforced:
    - buffer_target = max(buffer_min, ceil(total_allocation * buffer_pct)),
      computed in Decimal so that 100 * 0.15 is exactly 15.
    - needed >= 0 and stock_after_distribution >= 0.
    - Current stock is allocatable_in_inventory; destroyed batches do not
      cover any need.
    - Output is sorted low, balanced, surplus; within a status by needed
      descending, then product name.

Failure modes:
    - None.  A zero rider count falls back to policy.default_rider_count.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID

from distro_engines.inventory_summary import InventorySummaryLine
from distro_engines.tracer import traced_engine
from distro_kernel.domain.dtos import ProductCategory, ProductInfo
from distro_kernel.domain.policy import AllocationPolicy


class StockStatus(str, Enum):
    LOW = "low"
    BALANCED = "balanced"
    SURPLUS = "surplus"


_STATUS_ORDER = {StockStatus.LOW: 0, StockStatus.BALANCED: 1, StockStatus.SURPLUS: 2}


@dataclass(frozen=True)
class ProductionNeed:
    product_id: UUID
    product_name: str
    category: ProductCategory
    current_stock: int
    allocation_per_rider: int
    total_allocation: int
    buffer_target: int
    total_needed: int
    needed: int
    stock_after_distribution: int
    status: StockStatus


@dataclass(frozen=True)
class ProductionPlan:
    needs: tuple[ProductionNeed, ...]
    rider_count: int

    @property
    def low(self) -> tuple[ProductionNeed, ...]:
        return tuple(n for n in self.needs if n.status == StockStatus.LOW)

    @property
    def balanced(self) -> tuple[ProductionNeed, ...]:
        return tuple(n for n in self.needs if n.status == StockStatus.BALANCED)

    @property
    def surplus(self) -> tuple[ProductionNeed, ...]:
        return tuple(n for n in self.needs if n.status == StockStatus.SURPLUS)


def compute_need(
    product: ProductInfo,
    current_stock: int,
    rider_count: int,
    policy: AllocationPolicy,
) -> ProductionNeed:
    per_rider = policy.allocation_for(product)
    total_allocation = per_rider * rider_count
    buffer_target = max(
        policy.buffer_min,
        math.ceil(Decimal(total_allocation) * policy.buffer_pct),
    )
    total_needed = total_allocation + buffer_target
    needed = max(0, total_needed - current_stock)

    if needed > 0:
        status = StockStatus.LOW
    elif Decimal(current_stock) > Decimal(total_needed) * policy.surplus_factor:
        status = StockStatus.SURPLUS
    else:
        status = StockStatus.BALANCED

    return ProductionNeed(
        product_id=product.id,
        product_name=product.name,
        category=product.category,
        current_stock=current_stock,
        allocation_per_rider=per_rider,
        total_allocation=total_allocation,
        buffer_target=buffer_target,
        total_needed=total_needed,
        needed=needed,
        stock_after_distribution=max(0, current_stock - total_allocation),
        status=status,
    )


@traced_engine("production_needs", "1.0", fingerprint_fields=("rider_count",))
def plan_production(
    products: Sequence[ProductInfo],
    summary: Iterable[InventorySummaryLine],
    rider_count: int,
    policy: AllocationPolicy,
) -> ProductionPlan:
    """Production needs for every product, most urgent first."""
    riders = rider_count if rider_count > 0 else policy.default_rider_count
    stock = {line.product_id: line.allocatable_in_inventory for line in summary}

    needs = [compute_need(p, stock.get(p.id, 0), riders, policy) for p in products]
    needs.sort(key=lambda n: (_STATUS_ORDER[n.status], -n.needed, n.product_name))
    return ProductionPlan(needs=tuple(needs), rider_count=riders)
