"""
DistributionSelector -- read side of the distribution ledger.

Responsibility:
    Range and filter queries over distributions, returned as
    DistributionInfo (denormalised with rider and product) for the
    reconciliation engine, the inventory summary and reports.

Invariants enforced:
    - Date windows are inclusive of both bounds at day granularity.
    - list_open() spans all dates: a distribution stays pending until it
      is fully accounted, however old it is.
    - Newest first (distributed_at DESC, id) everywhere.
"""

from __future__ import annotations

from collections.abc import Iterator
from uuid import UUID

from sqlalchemy import select

from distro_kernel.domain.dtos import DistributionInfo
from distro_kernel.domain.windows import DateWindow
from distro_kernel.models.distribution import Distribution
from distro_kernel.selectors.base import BaseSelector

_NEWEST_FIRST = (Distribution.distributed_at.desc(), Distribution.id.asc())


class DistributionSelector(BaseSelector):
    """Read-only distribution queries."""

    def _select(self):
        return select(Distribution).execution_options(populate_existing=True)

    def get(self, distribution_id: UUID) -> DistributionInfo | None:
        dist = self.session.get(Distribution, distribution_id, populate_existing=True)
        return DistributionInfo.from_model(dist) if dist is not None else None

    def list_open(self, rider_id: UUID | None = None) -> Iterator[DistributionInfo]:
        """Distributions with remaining > 0, any date, optionally for one rider."""
        stmt = self._select().where(Distribution.remaining_expression() > 0)
        if rider_id is not None:
            stmt = stmt.where(Distribution.rider_id == rider_id)
        for dist in self.session.scalars(stmt.order_by(*_NEWEST_FIRST)):
            yield DistributionInfo.from_model(dist)

    def list_by_date_window(self, window: DateWindow) -> list[DistributionInfo]:
        return self.list_filtered(window=window)

    def list_by_rider(self, rider_id: UUID) -> list[DistributionInfo]:
        return self.list_filtered(rider_id=rider_id)

    def list_all(self) -> list[DistributionInfo]:
        return self.list_filtered()

    def list_filtered(
        self,
        rider_id: UUID | None = None,
        window: DateWindow | None = None,
    ) -> list[DistributionInfo]:
        stmt = self._select()
        if rider_id is not None:
            stmt = stmt.where(Distribution.rider_id == rider_id)
        if window is not None:
            stmt = stmt.where(
                Distribution.distributed_at >= window.start_at,
                Distribution.distributed_at < window.end_before,
            )
        stmt = stmt.order_by(*_NEWEST_FIRST)
        return [DistributionInfo.from_model(d) for d in self.session.scalars(stmt)]
