"""
Typed Exception Hierarchy for the Distribution Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (screens, reports, scripts) must react differently to "you typed a
bad date", "that batch does not exist" and "there is not enough stock".
Parsing message strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (the quantities involved, the ids),
     exposed to the JSON log formatter through log_fields()

Example:
    try:
        ledger.allocate(rider_id, batch_id, 40)
    except InsufficientStockError as e:
        offer_clamp(e.available)        # no re-query needed
    except NotFoundError as e:
        show(e.message_for_user)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    DistroKernelError (base)
    |
    +-- ValidationError
    |   +-- InsufficientStockError
    |   +-- BatchDestroyedError
    |   +-- ReturnReversalNotSupportedError
    |   +-- ProductInUseError
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- BatchNotFoundError
    |   +-- RiderNotFoundError
    |   +-- DistributionNotFoundError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Validation   | VALIDATION_ERROR              | Malformed / out-of-range input
             | INSUFFICIENT_STOCK            | Amount exceeds stock or remaining
             | BATCH_DESTROYED               | Mutating a destroyed batch
             | RETURN_REVERSAL_NOT_SUPPORTED | AdminCorrect lowering a return
             | PRODUCT_IN_USE                | Deleting a product with batches
-------------|-------------------------------|-----------------------------------
Not found    | PRODUCT_NOT_FOUND             | Unknown product id
             | BATCH_NOT_FOUND               | Unknown batch id
             | RIDER_NOT_FOUND               | Unknown rider id
             | DISTRIBUTION_NOT_FOUND        | Unknown distribution id
-------------|-------------------------------|-----------------------------------
Config       | CONFIGURATION_ERROR           | Malformed settings / policy file

A reconciliation "mismatch" (accounted quantity above distributed quantity)
is NOT an exception: it is a detected state reported by the reconciliation
engine.
"""

from __future__ import annotations

from typing import Any


class DistroKernelError(Exception):
    """
    Base exception for all distribution ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "DISTRO_KERNEL_ERROR"

    def log_fields(self) -> dict[str, Any]:
        """Structured data rendered as first-class fields when this error is logged."""
        return {}


# Validation exceptions


class ValidationError(DistroKernelError):
    """Malformed or out-of-range input. Recoverable by correcting input."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def log_fields(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InsufficientStockError(ValidationError):
    """
    Requested quantity exceeds what is available.

    Raised for allocation beyond batch stock, outcome amounts beyond a
    distribution's remaining quantity, and warehouse rejects beyond the
    batch's current quantity.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        requested: int,
        available: int,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient quantity on {entity_type} {entity_id}: "
            f"requested {requested}, available {available}",
            field="quantity",
        )

    def log_fields(self) -> dict[str, Any]:
        return {
            **super().log_fields(),
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "requested": self.requested,
            "available": self.available,
        }


class BatchDestroyedError(ValidationError):
    """Batch carries a destruction marker and is terminal."""

    code: str = "BATCH_DESTROYED"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__(f"Batch {batch_id} has been destroyed", field="batch_id")

    def log_fields(self) -> dict[str, Any]:
        return {**super().log_fields(), "batch_id": self.batch_id}


class ReturnReversalNotSupportedError(ValidationError):
    """
    An administrative correction tried to lower a recorded return.

    Lowering a return must debit the batch, which may no longer hold the
    stock; use DistributionLedgerService.reverse_return() instead.
    """

    code: str = "RETURN_REVERSAL_NOT_SUPPORTED"

    def __init__(self, distribution_id: str, current_returned: int, requested_returned: int):
        self.distribution_id = distribution_id
        self.current_returned = current_returned
        self.requested_returned = requested_returned
        super().__init__(
            f"Cannot lower returned quantity of distribution {distribution_id} "
            f"from {current_returned} to {requested_returned}; use reverse_return",
            field="returned_quantity",
        )

    def log_fields(self) -> dict[str, Any]:
        return {
            **super().log_fields(),
            "distribution_id": self.distribution_id,
            "current_returned": self.current_returned,
            "requested_returned": self.requested_returned,
        }


class ProductInUseError(ValidationError):
    """Product is referenced by batches and cannot be deleted."""

    code: str = "PRODUCT_IN_USE"

    def __init__(self, product_id: str, batch_count: int):
        self.product_id = product_id
        self.batch_count = batch_count
        super().__init__(
            f"Product {product_id} is referenced by {batch_count} batch(es)",
            field="product_id",
        )

    def log_fields(self) -> dict[str, Any]:
        return {**super().log_fields(), "product_id": self.product_id, "batch_count": self.batch_count}


# Lookup exceptions


class NotFoundError(DistroKernelError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"
    hint: str = ""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        message = f"{entity_type.capitalize()} not found: {entity_id}"
        if self.hint:
            message = f"{message} ({self.hint})"
        super().__init__(message)

    def log_fields(self) -> dict[str, Any]:
        return {"entity_type": self.entity_type, "entity_id": self.entity_id}

    @property
    def message_for_user(self) -> str:
        """Short message suitable for direct display."""
        if self.hint:
            return f"{self.entity_type.capitalize()} not found, {self.hint}"
        return f"{self.entity_type.capitalize()} not found"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"
    hint: str = "choose a valid product"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("product", product_id)


class BatchNotFoundError(NotFoundError):
    """Batch with given ID was not found."""

    code: str = "BATCH_NOT_FOUND"
    hint: str = "choose a batch with stock"

    def __init__(self, batch_id: str):
        self.batch_id = batch_id
        super().__init__("batch", batch_id)


class RiderNotFoundError(NotFoundError):
    """Rider with given ID was not found."""

    code: str = "RIDER_NOT_FOUND"
    hint: str = "choose a registered rider"

    def __init__(self, rider_id: str):
        self.rider_id = rider_id
        super().__init__("rider", rider_id)


class DistributionNotFoundError(NotFoundError):
    """Distribution with given ID was not found."""

    code: str = "DISTRIBUTION_NOT_FOUND"

    def __init__(self, distribution_id: str):
        self.distribution_id = distribution_id
        super().__init__("distribution", distribution_id)


# Configuration exceptions


class ConfigurationError(DistroKernelError):
    """Settings or allocation policy could not be parsed."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration in {source}: {reason}")

    def log_fields(self) -> dict[str, Any]:
        return {"source": self.source}
