"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that leave the kernel: ProductInfo,
    RiderInfo, BatchInfo, DistributionInfo, and the result types of the
    allocation operations (BulkAllocationResult, BundleAllocationResult).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked only by
    services and selectors.  Engines consume these DTOs and never see ORM
    entities.

Invariants enforced:
    - Every query result decodes into one of these types or fails; there is
      no loosely-typed row shape past the selector boundary.
    - Timestamps are timezone-aware (UTC) even when the store hands back
      naive values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from distro_kernel.models.batch import Batch as BatchModel
    from distro_kernel.models.distribution import Distribution as DistributionModel
    from distro_kernel.models.product import Product as ProductModel
    from distro_kernel.models.rider import Rider as RiderModel


class ProductCategory(str, Enum):
    """Primary products are the main sellable item; add-ons ride along."""

    PRIMARY = "primary"
    ADDON = "addon"


class OutcomeAction(str, Enum):
    """Rider-reported disposition of distributed units."""

    SELL = "sell"
    RETURN = "return"
    REJECT = "reject"


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps (SQLite drops the offset)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True, slots=True)
class ProductInfo:
    id: UUID
    name: str
    category: ProductCategory
    price: Decimal
    created_at: datetime | None = None

    @property
    def is_addon(self) -> bool:
        return self.category == ProductCategory.ADDON

    @classmethod
    def from_model(cls, model: ProductModel) -> ProductInfo:
        return cls(
            id=model.id,
            name=model.name,
            category=ProductCategory(model.category),
            price=Decimal(model.price if model.price is not None else 0),
            created_at=as_utc(model.created_at),
        )


@dataclass(frozen=True, slots=True)
class RiderInfo:
    id: UUID
    name: str
    phone: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, model: RiderModel) -> RiderInfo:
        return cls(
            id=model.id,
            name=model.name,
            phone=model.phone,
            created_at=as_utc(model.created_at),
        )


@dataclass(frozen=True, slots=True)
class BatchInfo:
    """
    Read model of a batch, denormalised with its product.

    is_destroyed is captured at read time from destroyed_at / the notes
    marker so that engines never need the ORM entity.
    """

    id: UUID
    product_id: UUID
    product_name: str
    product_category: ProductCategory
    production_date: date
    expiry_date: date
    initial_quantity: int
    current_quantity: int
    warehouse_rejected_quantity: int
    notes: str | None
    is_destroyed: bool
    rejected_at: datetime | None = None
    destroyed_at: datetime | None = None
    created_at: datetime | None = None

    def days_until_expiry(self, today: date) -> int:
        return (self.expiry_date - today).days

    def is_expired(self, today: date) -> bool:
        return self.expiry_date < today

    @property
    def is_available(self) -> bool:
        return self.current_quantity > 0 and not self.is_destroyed

    @classmethod
    def from_model(cls, model: BatchModel) -> BatchInfo:
        product = model.product
        return cls(
            id=model.id,
            product_id=model.product_id,
            product_name=product.name if product is not None else "Unknown",
            product_category=(
                ProductCategory(product.category)
                if product is not None
                else ProductCategory.PRIMARY
            ),
            production_date=model.production_date,
            expiry_date=model.expiry_date,
            initial_quantity=model.initial_quantity,
            current_quantity=model.current_quantity,
            warehouse_rejected_quantity=model.warehouse_rejected_quantity or 0,
            notes=model.notes,
            is_destroyed=model.is_destroyed,
            rejected_at=as_utc(model.rejected_at),
            destroyed_at=as_utc(model.destroyed_at),
            created_at=as_utc(model.created_at),
        )


@dataclass(frozen=True, slots=True)
class DistributionInfo:
    """
    Read model of a distribution, denormalised with rider and product.

    This is the input shape of the reconciliation engine and the inventory
    summary aggregator.
    """

    id: UUID
    rider_id: UUID
    rider_name: str
    batch_id: UUID
    product_id: UUID
    product_name: str
    product_category: ProductCategory
    product_price: Decimal
    quantity: int
    sold_quantity: int
    returned_quantity: int
    rejected_quantity: int
    distributed_at: datetime
    rejected_at: datetime | None = None
    notes: str | None = None
    batch_production_date: date | None = None
    batch_expiry_date: date | None = None

    @property
    def accounted(self) -> int:
        return self.sold_quantity + self.returned_quantity + self.rejected_quantity

    @property
    def remaining(self) -> int:
        return self.quantity - self.accounted

    @property
    def is_open(self) -> bool:
        return self.remaining > 0

    @classmethod
    def from_model(cls, model: DistributionModel) -> DistributionInfo:
        batch = model.batch
        product = batch.product if batch is not None else None
        rider = model.rider
        return cls(
            id=model.id,
            rider_id=model.rider_id,
            rider_name=rider.name if rider is not None else "Unknown",
            batch_id=model.batch_id,
            product_id=batch.product_id if batch is not None else None,
            product_name=product.name if product is not None else "Unknown",
            product_category=(
                ProductCategory(product.category)
                if product is not None
                else ProductCategory.PRIMARY
            ),
            product_price=Decimal(product.price) if product is not None else Decimal("0"),
            quantity=model.quantity,
            sold_quantity=model.sold_quantity or 0,
            returned_quantity=model.returned_quantity or 0,
            rejected_quantity=model.rejected_quantity or 0,
            distributed_at=as_utc(model.distributed_at),
            rejected_at=as_utc(model.rejected_at),
            notes=model.notes,
            batch_production_date=batch.production_date if batch is not None else None,
            batch_expiry_date=batch.expiry_date if batch is not None else None,
        )


# ---------------------------------------------------------------------------
# Allocation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SkippedAllocation:
    """One batch of a bulk allocation that was not allocated, and why."""

    batch_id: UUID
    reason_code: str
    message: str
    requested: int
    available: int | None = None


@dataclass(frozen=True, slots=True)
class BulkAllocationResult:
    created: tuple[DistributionInfo, ...] = ()
    skipped: tuple[SkippedAllocation, ...] = ()

    @property
    def all_allocated(self) -> bool:
        return not self.skipped


@dataclass(frozen=True, slots=True)
class BundleFailure:
    """A product the default bundle could not serve."""

    product_id: UUID
    product_name: str
    reason_code: str
    message: str


@dataclass(frozen=True, slots=True)
class BundleAllocationResult:
    created: tuple[DistributionInfo, ...] = ()
    failures: tuple[BundleFailure, ...] = ()
    claimed_batch_ids: frozenset[UUID] = field(default_factory=frozenset)
