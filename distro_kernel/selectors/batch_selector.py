"""
BatchSelector -- read side of the batch ledger.

Responsibility:
    FEFO-ordered batch queries for allocation screens, summaries and
    reports.  Every result is a BatchInfo.

Invariants enforced:
    - FEFO: available batches are ordered by ascending expiry_date, then
      production_date, then id, so the order is total and repeatable.
    - Destroyed batches (destroyed_at set OR destruction marker in notes)
      never appear in list_available(), whatever their current_quantity.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select

from distro_kernel.domain.dtos import BatchInfo
from distro_kernel.domain.windows import DateWindow
from distro_kernel.logging_config import get_logger
from distro_kernel.models.batch import Batch
from distro_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.batch")

_FEFO_ORDER = (Batch.expiry_date.asc(), Batch.production_date.asc(), Batch.id.asc())


class BatchSelector(BaseSelector):
    """Read-only batch queries."""

    def get(self, batch_id: UUID) -> BatchInfo | None:
        batch = self.session.get(Batch, batch_id, populate_existing=True)
        return BatchInfo.from_model(batch) if batch is not None else None

    def list_available(
        self,
        as_of: date | None = None,
        exclude_expired: bool = False,
        product_id: UUID | None = None,
    ) -> Iterator[BatchInfo]:
        """
        Batches that can be allocated, oldest-expiring first.

        Args:
            as_of: Reference day for the expiry test.  Required when
                exclude_expired is True.
            exclude_expired: Drop batches whose expiry_date is before as_of.
            product_id: Restrict to one product.

        Yields:
            BatchInfo with current_quantity > 0 and no destruction record.
        """
        stmt = select(Batch).where(Batch.current_quantity > 0, Batch.not_destroyed())
        if exclude_expired:
            if as_of is None:
                raise ValueError("as_of is required when exclude_expired is True")
            stmt = stmt.where(Batch.expiry_date >= as_of)
        if product_id is not None:
            stmt = stmt.where(Batch.product_id == product_id)
        stmt = stmt.order_by(*_FEFO_ORDER).execution_options(populate_existing=True)

        for batch in self.session.scalars(stmt):
            yield BatchInfo.from_model(batch)

    def list_batches(self) -> list[BatchInfo]:
        """All batches, destroyed and empty ones included, in FEFO order."""
        stmt = select(Batch).order_by(*_FEFO_ORDER).execution_options(populate_existing=True)
        return [BatchInfo.from_model(b) for b in self.session.scalars(stmt)]

    def list_produced_between(self, window: DateWindow) -> list[BatchInfo]:
        stmt = (
            select(Batch)
            .where(
                Batch.production_date >= window.start,
                Batch.production_date <= window.end,
            )
            .order_by(Batch.production_date.asc(), *_FEFO_ORDER)
            .execution_options(populate_existing=True)
        )
        return [BatchInfo.from_model(b) for b in self.session.scalars(stmt)]

    def list_expiring(self, within_days: int, today: date) -> list[BatchInfo]:
        """Available batches expiring on or before today + within_days (expired included)."""
        horizon = today + timedelta(days=within_days)
        stmt = (
            select(Batch)
            .where(
                Batch.current_quantity > 0,
                Batch.expiry_date <= horizon,
                Batch.not_destroyed(),
            )
            .order_by(*_FEFO_ORDER)
            .execution_options(populate_existing=True)
        )
        return [BatchInfo.from_model(b) for b in self.session.scalars(stmt)]
