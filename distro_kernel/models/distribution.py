"""
Module: distro_kernel.models.distribution
Responsibility: ORM persistence for distributions -- the central ledger row
    recording quantity handed from a batch to a rider and the three-way
    split of its eventual disposition.
Architecture position: Kernel > Models.  May import from db/base.py and
    sibling models only.

Invariants enforced:
    D1 -- quantity > 0, fixed at creation (CHECK ck_distribution_quantity_positive).
    D2 -- sold + returned + rejected <= quantity (CHECK ck_distribution_conservation).
    D3 -- each outcome counter >= 0.
    D4 -- remaining = quantity - sold - returned - rejected is never stored;
          it is derived (remaining_expression() for SQL, .remaining in Python).

Failure modes:
    - IntegrityError if an UPDATE would break D2.  DistributionLedgerService
      expresses increments as conditional UPDATEs so this is never the
      first check that fires.

Audit relevance:
    A distribution's remaining quantity is physically "with the rider" and
    appears in no warehouse counter until it is accounted for.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from distro_kernel.db.base import Base, UUIDString
from distro_kernel.models.batch import Batch
from distro_kernel.models.rider import Rider


class Distribution(Base):
    """
    Stock handed from one batch to one rider.

    Contract:
        quantity never changes after insert.  Outcome counters only grow
        through DistributionLedgerService.record_outcome(); absolute
        overrides go through admin_correct().
    """

    __tablename__ = "distributions"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_distribution_quantity_positive"),
        CheckConstraint(
            "sold_quantity >= 0 AND returned_quantity >= 0 AND rejected_quantity >= 0",
            name="ck_distribution_counters_non_negative",
        ),
        CheckConstraint(
            "sold_quantity + returned_quantity + rejected_quantity <= quantity",
            name="ck_distribution_conservation",
        ),
        Index("idx_distribution_rider", "rider_id"),
        Index("idx_distribution_batch", "batch_id"),
        Index("idx_distribution_distributed_at", "distributed_at"),
    )

    rider_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("riders.id", ondelete="CASCADE"),
        nullable=False,
    )
    batch_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("batches.id", ondelete="RESTRICT"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    distributed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    sold_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    returned_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejected_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    rider: Mapped[Rider] = relationship(lazy="joined")
    batch: Mapped[Batch] = relationship(lazy="joined")

    @classmethod
    def remaining_expression(cls):
        """SQL expression for the unaccounted quantity still with the rider."""
        return (
            cls.quantity
            - cls.sold_quantity
            - cls.returned_quantity
            - cls.rejected_quantity
        )

    @property
    def remaining(self) -> int:
        return (
            self.quantity
            - (self.sold_quantity or 0)
            - (self.returned_quantity or 0)
            - (self.rejected_quantity or 0)
        )

    def __repr__(self) -> str:
        return (
            f"<Distribution {self.id}: rider={self.rider_id} batch={self.batch_id} "
            f"qty={self.quantity} sold={self.sold_quantity} "
            f"returned={self.returned_quantity} rejected={self.rejected_quantity}>"
        )
