"""
BatchLedgerService -- the single writer of batch stock counters.

Responsibility:
    Records production, and applies every change to a batch's
    current_quantity: distribution debits, return credits, warehouse
    rejections and destruction.

Architecture position:
    Kernel > Services -- imperative shell.  DistributionLedgerService calls
    decrement_for_distribution() / increment_for_return() inside its own
    savepoint; those two methods therefore do not open one.

Invariants enforced:
    - 0 <= current_quantity at all times.  Every debit is a conditional
      UPDATE ``... WHERE current_quantity >= :amount``; if it matches no
      row the debit is refused, so two concurrent debits can never both
      succeed against the same units.
    - A destroyed batch is never debited by distribution or rejection.
    - destroy_batch() sets destroyed_at and appends the destruction marker
      to notes in the same UPDATE.

Failure modes:
    - ValidationError: bad dates, expiry before production, non-positive
      quantity, blank destruction reason.
    - ProductNotFoundError: create_batch() for an unknown product.
    - BatchNotFoundError / BatchDestroyedError / InsufficientStockError
      from the debit paths.

Audit relevance:
    Warehouse rejections and destruction leave timestamped notes on the
    batch; the counter history is reconstructable from distributions.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from distro_kernel.domain.dtos import BatchInfo
from distro_kernel.domain.windows import parse_day
from distro_kernel.exceptions import (
    BatchDestroyedError,
    BatchNotFoundError,
    InsufficientStockError,
    ProductNotFoundError,
    ValidationError,
)
from distro_kernel.logging_config import LogContext, get_logger
from distro_kernel.models.batch import DESTRUCTION_MARKER, Batch
from distro_kernel.models.product import Product
from distro_kernel.services.base import BaseService, require_quantity

logger = get_logger("services.batch_ledger")


def _append_note(existing: str | None, line: str) -> str:
    return f"{existing}\n{line}" if existing else line


class BatchLedgerService(BaseService):
    """Write side of the batch ledger."""

    # -----------------------------------------------------------------
    # Production
    # -----------------------------------------------------------------

    def create_batch(
        self,
        product_id: UUID,
        production_date: date | str,
        expiry_date: date | str,
        initial_quantity: int,
        notes: str | None = None,
    ) -> BatchInfo:
        """
        Record a produced batch.  current_quantity starts at initial_quantity.

        Raises:
            ValidationError: Unparseable dates, expiry before production,
                or a non-positive quantity.
            ProductNotFoundError: product_id does not exist.
        """
        produced = parse_day(production_date, "production_date")
        expires = parse_day(expiry_date, "expiry_date")
        if expires < produced:
            raise ValidationError(
                f"expiry_date {expires} is before production_date {produced}",
                field="expiry_date",
            )
        qty = require_quantity(initial_quantity, "initial_quantity")

        if self.session.get(Product, product_id) is None:
            logger.warning("batch_unknown_product", extra={"product_id": str(product_id)})
            raise ProductNotFoundError(str(product_id))

        batch = Batch(
            product_id=product_id,
            production_date=produced,
            expiry_date=expires,
            initial_quantity=qty,
            current_quantity=qty,
            warehouse_rejected_quantity=0,
            notes=notes or None,
        )
        try:
            with self.session.begin_nested():
                self.session.add(batch)
                self.session.flush()
        except IntegrityError as exc:
            # Product deleted between the lookup and the insert.
            raise ProductNotFoundError(str(product_id)) from exc

        logger.info(
            "batch_created",
            extra={
                "batch_id": str(batch.id),
                "product_id": str(product_id),
                "quantity": qty,
                "production_date": str(produced),
                "expiry_date": str(expires),
            },
        )
        return BatchInfo.from_model(batch)

    # -----------------------------------------------------------------
    # Counter movements used by the distribution ledger
    # -----------------------------------------------------------------

    def decrement_for_distribution(self, batch_id: UUID, amount: int) -> None:
        """
        Debit amount units for a distribution.  Runs in the caller's savepoint.

        Raises:
            BatchNotFoundError, BatchDestroyedError, InsufficientStockError.
        """
        amount = require_quantity(amount, "quantity")
        result = self.session.execute(
            update(Batch)
            .where(
                Batch.id == batch_id,
                Batch.current_quantity >= amount,
                Batch.not_destroyed(),
            )
            .values(current_quantity=Batch.current_quantity - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._raise_refused_debit(batch_id, amount)

    def increment_for_return(self, batch_id: UUID, amount: int) -> None:
        """
        Credit amount returned units back to the batch.

        A destroyed batch still receives the credit (the rider physically
        brought the units back) but stays excluded from allocation.
        """
        amount = require_quantity(amount, "amount")
        result = self.session.execute(
            update(Batch)
            .where(Batch.id == batch_id)
            .values(current_quantity=Batch.current_quantity + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise BatchNotFoundError(str(batch_id))

        batch = self.session.get(Batch, batch_id, populate_existing=True)
        if batch is not None and batch.is_destroyed:
            logger.warning(
                "return_credited_to_destroyed_batch",
                extra={"batch_id": str(batch_id), "quantity": amount},
            )

    def decrement_for_return_reversal(self, batch_id: UUID, amount: int) -> None:
        """Take back a return credit.  Destroyed batches are allowed."""
        amount = require_quantity(amount, "amount")
        result = self.session.execute(
            update(Batch)
            .where(Batch.id == batch_id, Batch.current_quantity >= amount)
            .values(current_quantity=Batch.current_quantity - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            batch = self.session.get(Batch, batch_id, populate_existing=True)
            if batch is None:
                raise BatchNotFoundError(str(batch_id))
            raise InsufficientStockError("batch", str(batch_id), amount, batch.current_quantity)

    # -----------------------------------------------------------------
    # Warehouse operations
    # -----------------------------------------------------------------

    def warehouse_reject(
        self,
        batch_id: UUID,
        amount: int,
        reason: str | None = None,
    ) -> BatchInfo:
        """Remove amount units from stock as rejected in the warehouse."""
        amount = require_quantity(amount, "amount")
        now = self.clock.now()

        with LogContext.bind(batch_id=batch_id):
            with self.session.begin_nested():
                result = self.session.execute(
                    update(Batch)
                    .where(
                        Batch.id == batch_id,
                        Batch.current_quantity >= amount,
                        Batch.not_destroyed(),
                    )
                    .values(
                        current_quantity=Batch.current_quantity - amount,
                        warehouse_rejected_quantity=Batch.warehouse_rejected_quantity + amount,
                        rejected_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    self._raise_refused_debit(batch_id, amount)

                batch = self.session.get(Batch, batch_id, populate_existing=True)
                line = f"[REJECTED] {now.isoformat()}: {amount}"
                if reason and reason.strip():
                    line = f"{line} - {reason.strip()}"
                batch.notes = _append_note(batch.notes, line)
                self.session.flush()

            logger.info(
                "batch_warehouse_rejected",
                extra={"quantity": amount, "remaining": batch.current_quantity},
            )
        return BatchInfo.from_model(batch)

    def destroy_batch(self, batch_id: UUID, reason: str) -> BatchInfo:
        """
        Write off the whole remaining stock of a batch.

        Raises:
            ValidationError: reason is blank.
            BatchNotFoundError: unknown batch.
            BatchDestroyedError: the batch was already destroyed.
        """
        if not isinstance(reason, str) or not reason.strip():
            raise ValidationError("A destruction reason is required", field="reason")
        now = self.clock.now()

        with LogContext.bind(batch_id=batch_id):
            with self.session.begin_nested():
                batch = self.session.get(
                    Batch, batch_id, with_for_update=True, populate_existing=True
                )
                if batch is None:
                    raise BatchNotFoundError(str(batch_id))
                if batch.is_destroyed:
                    logger.warning("batch_already_destroyed")
                    raise BatchDestroyedError(str(batch_id))

                written_off = batch.current_quantity
                batch.current_quantity = 0
                batch.destroyed_at = now
                batch.notes = _append_note(
                    batch.notes,
                    f"{DESTRUCTION_MARKER} {now.isoformat()}: {reason.strip()}",
                )
                self.session.flush()

            logger.info("batch_destroyed", extra={"quantity": written_off})
        return BatchInfo.from_model(batch)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _raise_refused_debit(self, batch_id: UUID, amount: int) -> None:
        """Explain why a conditional debit matched no row."""
        batch = self.session.get(Batch, batch_id, populate_existing=True)
        if batch is None:
            raise BatchNotFoundError(str(batch_id))
        if batch.is_destroyed:
            logger.warning("batch_destroyed_debit_refused", extra={"batch_id": str(batch_id)})
            raise BatchDestroyedError(str(batch_id))
        logger.warning(
            "batch_insufficient_stock",
            extra={
                "batch_id": str(batch_id),
                "requested": amount,
                "available": batch.current_quantity,
            },
        )
        raise InsufficientStockError("batch", str(batch_id), amount, batch.current_quantity)
