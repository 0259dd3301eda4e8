"""
Module: distro_kernel.models.batch
Responsibility: ORM persistence for production batches.  Each batch is a
    dated lot of one product with a current-quantity counter that tracks
    what is physically in the warehouse.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    B1 -- initial_quantity > 0 (CHECK ck_batch_initial_positive).
    B2 -- 0 <= current_quantity <= initial_quantity (CHECK ck_batch_current_bounds).
    B3 -- expiry_date >= production_date (CHECK ck_batch_expiry_after_production).
    B4 -- warehouse_rejected_quantity >= 0.
    B5 -- A batch whose notes carry DESTRUCTION_MARKER is terminal.  The
          marker and destroyed_at are written together by
          BatchLedgerService.destroy_batch().

Failure modes:
    - IntegrityError if an UPDATE would break B2 (last line of defence; the
      ledger service rejects such updates before they reach the database).

Audit relevance:
    Batches are never physically deleted.  Destruction zeroes the counter
    and appends a timestamped reason to notes.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    and_,
    or_,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distro_kernel.db.base import TrackedBase, UUIDString
from distro_kernel.models.product import Product

# Token searched for in notes; products/reports rely on it being stable.
DESTRUCTION_MARKER = "[DESTROYED]"


class Batch(TrackedBase):
    """
    A produced lot of one product.

    Contract:
        current_quantity is decremented by distribution, warehouse rejection
        and destruction, and incremented only by rider returns.  All of these
        go through BatchLedgerService so that the decrement is a conditional
        UPDATE and never a read-modify-write.
    """

    __tablename__ = "batches"

    __table_args__ = (
        CheckConstraint("initial_quantity > 0", name="ck_batch_initial_positive"),
        CheckConstraint(
            "current_quantity >= 0 AND current_quantity <= initial_quantity",
            name="ck_batch_current_bounds",
        ),
        CheckConstraint(
            "expiry_date >= production_date",
            name="ck_batch_expiry_after_production",
        ),
        CheckConstraint(
            "warehouse_rejected_quantity >= 0",
            name="ck_batch_rejected_non_negative",
        ),
        # Query: FEFO allocation order
        Index("idx_batch_expiry", "expiry_date"),
        Index("idx_batch_product", "product_id"),
        Index("idx_batch_production_date", "production_date"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    production_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date] = mapped_column(Date, nullable=False)

    initial_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    current_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    warehouse_rejected_quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    destroyed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    product: Mapped[Product] = relationship(lazy="joined")

    @classmethod
    def not_destroyed(cls):
        """SQL predicate matching batches with no destruction record."""
        return and_(
            cls.destroyed_at.is_(None),
            or_(cls.notes.is_(None), ~cls.notes.contains(DESTRUCTION_MARKER)),
        )

    @property
    def is_destroyed(self) -> bool:
        """True once a destruction has been recorded."""
        return self.destroyed_at is not None or DESTRUCTION_MARKER in (self.notes or "")

    def __repr__(self) -> str:
        return (
            f"<Batch {self.id}: product={self.product_id} "
            f"qty={self.current_quantity}/{self.initial_quantity} exp={self.expiry_date}>"
        )
