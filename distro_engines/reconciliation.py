"""
distro_engines.reconciliation -- classify distributions by how fully they
are accounted for.

Responsibility:
    Turn DistributionInfo rows into ReconciliationItems (accounted,
    unaccounted, percentage, status) and aggregate them into a
    ReconciliationSummary.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import distro_kernel/domain and logging.
    Consumed by distro_services.reconciliation_service and the report
    builder.

Invariants enforced:
    - unaccounted = quantity - (sold + returned + rejected), signed.
    - Status is exactly one of pending (>0), complete (==0) or
      mismatch (<0).  A mismatch is reported, never corrected.
    - Percentages round half up, so 62.5 -> 63 and 12.5 -> 13.
    - Purity: identical inputs give identical outputs; no clock access.

Failure modes:
    - None raised.  A mismatch is logged at ERROR as an integrity finding.

Audit relevance:
    A mismatch means counters were written outside the ledger services
    (or by a defect); the ERROR record carries the distribution id and
    counter values for investigation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from uuid import UUID

from distro_engines.tracer import traced_engine
from distro_kernel.domain.dtos import DistributionInfo
from distro_kernel.logging_config import get_logger

logger = get_logger("engines.reconciliation")


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    MISMATCH = "mismatch"
    COMPLETE = "complete"


def round_half_up(value: Decimal | int) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def accounting_percentage(accounted: int, quantity: int) -> int:
    if quantity <= 0:
        return 0
    return round_half_up(Decimal(accounted) * 100 / Decimal(quantity))


@dataclass(frozen=True)
class ReconciliationItem:
    """One distribution with its reconciliation figures."""

    distribution: DistributionInfo
    accounted: int
    unaccounted: int
    accounting_percentage: int
    status: ReconciliationStatus

    @property
    def distribution_id(self) -> UUID:
        return self.distribution.id

    @property
    def rider_name(self) -> str:
        return self.distribution.rider_name

    @property
    def product_name(self) -> str:
        return self.distribution.product_name


@dataclass(frozen=True)
class ReconciliationSummary:
    items: tuple[ReconciliationItem, ...]
    total_distributed: int
    total_sold: int
    total_returned: int
    total_rejected: int
    total_unaccounted: int
    accounting_percentage: int

    @property
    def pending(self) -> tuple[ReconciliationItem, ...]:
        return self._with_status(ReconciliationStatus.PENDING)

    @property
    def mismatched(self) -> tuple[ReconciliationItem, ...]:
        return self._with_status(ReconciliationStatus.MISMATCH)

    @property
    def complete(self) -> tuple[ReconciliationItem, ...]:
        return self._with_status(ReconciliationStatus.COMPLETE)

    @property
    def item_count(self) -> int:
        return len(self.items)

    def _with_status(self, status: ReconciliationStatus) -> tuple[ReconciliationItem, ...]:
        return tuple(item for item in self.items if item.status == status)


def reconcile(distribution: DistributionInfo) -> ReconciliationItem:
    """Classify a single distribution."""
    accounted = (
        distribution.sold_quantity
        + distribution.returned_quantity
        + distribution.rejected_quantity
    )
    unaccounted = distribution.quantity - accounted

    if unaccounted > 0:
        status = ReconciliationStatus.PENDING
    elif unaccounted < 0:
        status = ReconciliationStatus.MISMATCH
        # INVARIANT: conservation; report, do not repair
        logger.error(
            "reconciliation_mismatch",
            extra={
                "distribution_id": str(distribution.id),
                "quantity": distribution.quantity,
                "sold": distribution.sold_quantity,
                "returned": distribution.returned_quantity,
                "rejected": distribution.rejected_quantity,
                "over_accounted": -unaccounted,
            },
        )
    else:
        status = ReconciliationStatus.COMPLETE

    return ReconciliationItem(
        distribution=distribution,
        accounted=accounted,
        unaccounted=unaccounted,
        accounting_percentage=accounting_percentage(accounted, distribution.quantity),
        status=status,
    )


def summarize(items: Iterable[ReconciliationItem]) -> ReconciliationSummary:
    """
    Aggregate reconciliation items.

    total_unaccounted sums the absolute unaccounted values, so an
    over-accounted distribution adds to the figure rather than cancelling a
    pending one.  The overall percentage is the rounded mean of the item
    percentages, not the ratio of the totals.
    """
    items = tuple(items)
    overall = 0
    if items:
        overall = round_half_up(
            Decimal(sum(item.accounting_percentage for item in items)) / len(items)
        )
    return ReconciliationSummary(
        items=items,
        total_distributed=sum(i.distribution.quantity for i in items),
        total_sold=sum(i.distribution.sold_quantity for i in items),
        total_returned=sum(i.distribution.returned_quantity for i in items),
        total_rejected=sum(i.distribution.rejected_quantity for i in items),
        total_unaccounted=sum(abs(i.unaccounted) for i in items),
        accounting_percentage=overall,
    )


@traced_engine("reconciliation", "1.0")
def reconcile_all(distributions: Iterable[DistributionInfo]) -> ReconciliationSummary:
    """reconcile() every distribution, then summarize()."""
    return summarize(reconcile(d) for d in distributions)
