"""
DistributionLedgerService -- stock handed to riders and what became of it.

Responsibility:
    Allocation of batch stock to riders (single, bulk and policy bundle),
    recording of sold / returned / rejected outcomes, administrative
    corrections and return reversals.

Architecture position:
    Kernel > Services -- imperative shell.  Owns the distributions table
    and drives BatchLedgerService for every batch counter change, so a
    distribution and its batch movement always commit or roll back
    together.

Invariants enforced:
    - Conservation: for every distribution
      ``sold + returned + rejected <= quantity``.  Outcome increments are a
      conditional UPDATE on remaining >= amount.
    - No oversell: allocation debits the batch with a conditional UPDATE
      before the distribution row is inserted, inside one savepoint.
    - Returns credit the source batch by exactly the returned amount.
      Lowering a recorded return is only possible through
      reverse_return(), which debits the batch under the same checks as
      allocation.
    - Bundle allocation never allocates the same batch twice in one call.

Failure modes:
    - ValidationError for malformed quantities or actions.
    - RiderNotFoundError / DistributionNotFoundError for unknown ids.
    - InsufficientStockError / BatchNotFoundError / BatchDestroyedError
      from the batch debit.  Bulk and bundle allocation report these per
      item instead of raising.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select, update

from distro_kernel.domain.clock import Clock
from distro_kernel.domain.dtos import (
    BatchInfo,
    BulkAllocationResult,
    BundleAllocationResult,
    BundleFailure,
    DistributionInfo,
    OutcomeAction,
    ProductInfo,
    SkippedAllocation,
)
from distro_kernel.domain.policy import AllocationPolicy
from distro_kernel.exceptions import (
    BatchDestroyedError,
    BatchNotFoundError,
    DistributionNotFoundError,
    InsufficientStockError,
    ReturnReversalNotSupportedError,
    RiderNotFoundError,
    ValidationError,
)
from distro_kernel.logging_config import LogContext, get_logger
from distro_kernel.models.distribution import Distribution
from distro_kernel.models.rider import Rider
from distro_kernel.selectors.batch_selector import BatchSelector
from distro_kernel.selectors.catalog_selector import CatalogSelector
from distro_kernel.services.base import BaseService, require_quantity
from distro_kernel.services.batch_ledger import BatchLedgerService

logger = get_logger("services.distribution_ledger")

# Errors a single batch can produce during bulk or bundle allocation.
_PER_BATCH_ERRORS = (InsufficientStockError, BatchNotFoundError, BatchDestroyedError)

_OUTCOME_COLUMNS = {
    OutcomeAction.SELL: "sold_quantity",
    OutcomeAction.RETURN: "returned_quantity",
    OutcomeAction.REJECT: "rejected_quantity",
}


def _append_note(existing: str | None, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


class DistributionLedgerService(BaseService):
    """Write side of the distribution ledger."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        batch_ledger: BatchLedgerService | None = None,
    ):
        super().__init__(session, clock)
        self._batches = batch_ledger or BatchLedgerService(session, self.clock)

    # -----------------------------------------------------------------
    # Allocation
    # -----------------------------------------------------------------

    def allocate(
        self,
        rider_id: UUID,
        batch_id: UUID,
        quantity: int,
        notes: str | None = None,
    ) -> DistributionInfo:
        """
        Hand quantity units of one batch to a rider.

        The batch debit and the distribution insert run in one savepoint;
        if either fails nothing is written.

        Raises:
            ValidationError: quantity is not a positive integer.
            RiderNotFoundError: unknown rider.
            BatchNotFoundError, BatchDestroyedError, InsufficientStockError.
        """
        quantity = require_quantity(quantity, "quantity")
        self._require_rider(rider_id)

        with LogContext.bind(rider_id=rider_id, batch_id=batch_id):
            with self.session.begin_nested():
                self._batches.decrement_for_distribution(batch_id, quantity)
                dist = Distribution(
                    rider_id=rider_id,
                    batch_id=batch_id,
                    quantity=quantity,
                    sold_quantity=0,
                    returned_quantity=0,
                    rejected_quantity=0,
                    distributed_at=self.clock.now(),
                    notes=notes or None,
                )
                self.session.add(dist)
                self.session.flush()

            logger.info(
                "distribution_allocated",
                extra={"distribution_id": str(dist.id), "quantity": quantity},
            )
        return self._info(dist.id)

    def allocate_bulk(
        self,
        rider_id: UUID,
        batch_ids: Iterable[UUID],
        quantity_per_batch: int,
        clamp_to_available: bool = False,
    ) -> BulkAllocationResult:
        """
        Allocate quantity_per_batch from each batch to one rider.

        Each batch is independent: one batch failing does not undo the
        others.  With clamp_to_available, a batch holding less than
        quantity_per_batch gives what it has instead of being skipped.

        Returns:
            BulkAllocationResult with the created distributions and one
            SkippedAllocation per batch that could not be allocated.
        """
        quantity = require_quantity(quantity_per_batch, "quantity_per_batch")
        self._require_rider(rider_id)
        batches = BatchSelector(self.session)

        created: list[DistributionInfo] = []
        skipped: list[SkippedAllocation] = []
        for batch_id in batch_ids:
            requested = quantity
            if clamp_to_available:
                batch = batches.get(batch_id)
                available = batch.current_quantity if batch is not None else 0
                if batch is not None and 0 < available < quantity:
                    requested = available
            try:
                created.append(self.allocate(rider_id, batch_id, requested))
            except _PER_BATCH_ERRORS as exc:
                skipped.append(
                    SkippedAllocation(
                        batch_id=batch_id,
                        reason_code=exc.code.lower(),
                        message=str(exc),
                        requested=requested,
                        available=getattr(exc, "available", None),
                    )
                )

        logger.info(
            "bulk_allocation_completed",
            extra={
                "rider_id": str(rider_id),
                "created_count": len(created),
                "skipped_count": len(skipped),
            },
        )
        return BulkAllocationResult(created=tuple(created), skipped=tuple(skipped))

    def allocate_default_bundle(
        self,
        rider_id: UUID,
        policy: AllocationPolicy,
        as_of: date | None = None,
    ) -> BundleAllocationResult:
        """
        Give a rider the standard bundle: for every catalog product with a
        non-zero policy quantity, the FEFO-first eligible batch.

        Eligible means not destroyed, not expired on as_of, with stock, and
        not already claimed earlier in this call.  A product without an
        eligible batch, or whose batch is short, is reported as a failure;
        the other products are still allocated.
        """
        self._require_rider(rider_id)
        as_of = as_of or self.clock.today()

        candidates = list(
            BatchSelector(self.session).list_available(as_of=as_of, exclude_expired=True)
        )
        claimed: set[UUID] = set()
        created: list[DistributionInfo] = []
        failures: list[BundleFailure] = []

        with LogContext.bind(rider_id=rider_id):
            for product in CatalogSelector(self.session).list_products():
                quantity = policy.allocation_for(product)
                if quantity <= 0:
                    continue

                batch = next(
                    (
                        b
                        for b in self._candidates_for(product, candidates)
                        if b.id not in claimed
                    ),
                    None,
                )
                if batch is None:
                    failures.append(
                        BundleFailure(
                            product_id=product.id,
                            product_name=product.name,
                            reason_code="no_eligible_batch",
                            message=f"No available batch for {product.name}",
                        )
                    )
                    continue

                claimed.add(batch.id)
                try:
                    created.append(self.allocate(rider_id, batch.id, quantity))
                except _PER_BATCH_ERRORS as exc:
                    failures.append(
                        BundleFailure(
                            product_id=product.id,
                            product_name=product.name,
                            reason_code=exc.code.lower(),
                            message=str(exc),
                        )
                    )

            logger.info(
                "bundle_allocation_completed",
                extra={"created_count": len(created), "failed_count": len(failures)},
            )
        return BundleAllocationResult(
            created=tuple(created),
            failures=tuple(failures),
            claimed_batch_ids=frozenset(claimed),
        )

    def _candidates_for(
        self,
        product: ProductInfo,
        candidates: Sequence[BatchInfo],
    ) -> list[BatchInfo]:
        """FEFO-ordered candidate batches for one product."""
        return [b for b in candidates if b.product_id == product.id]

    # -----------------------------------------------------------------
    # Outcomes
    # -----------------------------------------------------------------

    def record_outcome(
        self,
        distribution_id: UUID,
        action: OutcomeAction | str,
        amount: int,
    ) -> DistributionInfo:
        """
        Add amount to the sold, returned or rejected counter.

        A return also credits the source batch.  A reject stamps
        rejected_at.

        Raises:
            ValidationError: unknown action or non-positive amount.
            DistributionNotFoundError: unknown distribution.
            InsufficientStockError: amount exceeds the remaining quantity.
        """
        try:
            action = OutcomeAction(action)
        except ValueError as exc:
            raise ValidationError(f"Unknown outcome action: {action!r}", field="action") from exc
        amount = require_quantity(amount, "amount")

        column = _OUTCOME_COLUMNS[action]
        values = {column: getattr(Distribution, column) + amount}
        if action == OutcomeAction.REJECT:
            values["rejected_at"] = self.clock.now()

        with LogContext.bind(distribution_id=distribution_id):
            with self.session.begin_nested():
                result = self.session.execute(
                    update(Distribution)
                    .where(
                        Distribution.id == distribution_id,
                        Distribution.remaining_expression() >= amount,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    self._raise_refused_outcome(distribution_id, amount)

                if action == OutcomeAction.RETURN:
                    batch_id = self.session.scalar(
                        select(Distribution.batch_id).where(Distribution.id == distribution_id)
                    )
                    self._batches.increment_for_return(batch_id, amount)

            logger.info(
                "outcome_recorded",
                extra={"action": action.value, "quantity": amount},
            )
        return self._info(distribution_id)

    def admin_correct(
        self,
        distribution_id: UUID,
        sold_quantity: int,
        returned_quantity: int,
        notes: str | None = None,
    ) -> DistributionInfo:
        """
        Overwrite sold and returned counters with absolute values.

        An increase in returned_quantity credits the batch by the delta.
        A decrease is refused; use reverse_return().

        Raises:
            ValidationError: negative values, or the new totals exceed
                the distributed quantity.
            ReturnReversalNotSupportedError: returned_quantity would drop.
            DistributionNotFoundError: unknown distribution.
        """
        sold = require_quantity(sold_quantity, "sold_quantity", allow_zero=True)
        returned = require_quantity(returned_quantity, "returned_quantity", allow_zero=True)

        with LogContext.bind(distribution_id=distribution_id):
            with self.session.begin_nested():
                dist = self._lock(distribution_id)
                if sold + returned + dist.rejected_quantity > dist.quantity:
                    raise ValidationError(
                        f"sold {sold} + returned {returned} + rejected "
                        f"{dist.rejected_quantity} exceeds distributed {dist.quantity}",
                        field="sold_quantity",
                    )
                if returned < dist.returned_quantity:
                    logger.warning(
                        "return_decrease_refused",
                        extra={"current": dist.returned_quantity, "requested": returned},
                    )
                    raise ReturnReversalNotSupportedError(
                        str(distribution_id), dist.returned_quantity, returned
                    )

                delta = returned - dist.returned_quantity
                previous_sold = dist.sold_quantity
                dist.sold_quantity = sold
                dist.returned_quantity = returned
                if notes is not None:
                    dist.notes = notes
                self.session.flush()
                if delta:
                    self._batches.increment_for_return(dist.batch_id, delta)

            logger.info(
                "distribution_corrected",
                extra={
                    "sold_before": previous_sold,
                    "sold_after": sold,
                    "returned_delta": delta,
                },
            )
        return self._info(distribution_id)

    def reverse_return(
        self,
        distribution_id: UUID,
        amount: int,
        notes: str | None = None,
    ) -> DistributionInfo:
        """
        Undo amount units of a recorded return and debit them from the batch.

        Raises:
            ValidationError: non-positive amount.
            InsufficientStockError: amount exceeds the recorded return, or
                the batch no longer holds the units.
            DistributionNotFoundError: unknown distribution.
        """
        amount = require_quantity(amount, "amount")
        now = self.clock.now()

        with LogContext.bind(distribution_id=distribution_id):
            with self.session.begin_nested():
                dist = self._lock(distribution_id)
                if amount > dist.returned_quantity:
                    raise InsufficientStockError(
                        "distribution returns", str(distribution_id), amount, dist.returned_quantity
                    )
                self._batches.decrement_for_return_reversal(dist.batch_id, amount)

                dist.returned_quantity -= amount
                line = f"[RETURN REVERSED] {now.isoformat()}: {amount}"
                if notes and notes.strip():
                    line = f"{line} - {notes.strip()}"
                dist.notes = _append_note(dist.notes, line)
                self.session.flush()

            logger.info("return_reversed", extra={"quantity": amount})
        return self._info(distribution_id)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _require_rider(self, rider_id: UUID) -> None:
        if self.session.get(Rider, rider_id) is None:
            raise RiderNotFoundError(str(rider_id))

    def _lock(self, distribution_id: UUID) -> Distribution:
        dist = self.session.get(
            Distribution, distribution_id, with_for_update=True, populate_existing=True
        )
        if dist is None:
            raise DistributionNotFoundError(str(distribution_id))
        return dist

    def _info(self, distribution_id: UUID) -> DistributionInfo:
        dist = self.session.get(Distribution, distribution_id, populate_existing=True)
        return DistributionInfo.from_model(dist)

    def _raise_refused_outcome(self, distribution_id: UUID, amount: int) -> None:
        dist = self.session.get(Distribution, distribution_id, populate_existing=True)
        if dist is None:
            raise DistributionNotFoundError(str(distribution_id))
        logger.warning(
            "outcome_exceeds_remaining",
            extra={"requested": amount, "available": dist.remaining},
        )
        raise InsufficientStockError("distribution", str(distribution_id), amount, dist.remaining)
