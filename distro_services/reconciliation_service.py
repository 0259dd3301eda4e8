"""
distro_services.reconciliation_service -- reconciliation over stored
distributions.

Responsibility:
    Load distributions through DistributionSelector, optionally narrowed
    to a date window and/or a rider, and hand them to the pure
    reconciliation engine.

Architecture position:
    Services -- orchestration over engines + kernel selectors.  Read only.

Invariants enforced:
    - Never writes.  A mismatch found here is logged by the engine and
      left for investigation.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from distro_engines.reconciliation import (
    ReconciliationItem,
    ReconciliationSummary,
    reconcile,
    reconcile_all,
)
from distro_kernel.domain.windows import DateWindow
from distro_kernel.exceptions import DistributionNotFoundError
from distro_kernel.logging_config import get_logger
from distro_kernel.selectors.distribution_selector import DistributionSelector

logger = get_logger("services.reconciliation")


class ReconciliationService:
    """Read-side reconciliation of the distribution ledger."""

    def __init__(self, session: Session):
        self._distributions = DistributionSelector(session)

    def reconcile_window(
        self,
        window: DateWindow | None = None,
        rider_id: UUID | None = None,
    ) -> ReconciliationSummary:
        """Reconcile distributions in window (all dates when None), optionally for one rider."""
        rows = self._distributions.list_filtered(rider_id=rider_id, window=window)
        summary = reconcile_all(rows)

        logger.info(
            "reconciliation_computed",
            extra={
                "window_start": str(window.start) if window else None,
                "window_end": str(window.end) if window else None,
                "item_count": summary.item_count,
                "mismatch_count": len(summary.mismatched),
                "accounting_percentage": summary.accounting_percentage,
            },
        )
        return summary

    def reconcile_distribution(self, distribution_id: UUID) -> ReconciliationItem:
        dist = self._distributions.get(distribution_id)
        if dist is None:
            raise DistributionNotFoundError(str(distribution_id))
        return reconcile(dist)
