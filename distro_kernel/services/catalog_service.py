"""
CatalogService -- product and rider maintenance.

Responsibility:
    Create, edit and delete the reference entities the ledgers point at.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Product names are unique and non-blank; prices are non-negative.
    - A product referenced by any batch cannot be deleted.
    - Deleting a rider deletes that rider's distributions.  Stock still
      out with the rider is NOT credited back to batches.

Failure modes:
    - ValidationError on blank name, negative price, unknown category or
      duplicate name.
    - ProductInUseError when deleting a product that has batches.
    - ProductNotFoundError / RiderNotFoundError for unknown ids.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError

from distro_kernel.domain.dtos import ProductCategory, ProductInfo, RiderInfo
from distro_kernel.exceptions import (
    ProductInUseError,
    ProductNotFoundError,
    RiderNotFoundError,
    ValidationError,
)
from distro_kernel.logging_config import get_logger
from distro_kernel.models.batch import Batch
from distro_kernel.models.distribution import Distribution
from distro_kernel.models.product import Product
from distro_kernel.models.rider import Rider
from distro_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _clean_name(name: object, field: str = "name") -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{field} must not be blank", field=field)
    return name.strip()


def _parse_category(category: ProductCategory | str) -> ProductCategory:
    try:
        return ProductCategory(category)
    except ValueError as exc:
        raise ValidationError(f"Unknown product category: {category!r}", field="category") from exc


def _parse_price(price: Decimal | int | str) -> Decimal:
    try:
        value = Decimal(str(price))
    except InvalidOperation as exc:
        raise ValidationError(f"price is not a number: {price!r}", field="price") from exc
    if not value.is_finite() or value < 0:
        raise ValidationError(f"price must be non-negative, got {price}", field="price")
    return value


class CatalogService(BaseService):
    """Write side of products and riders."""

    # -----------------------------------------------------------------
    # Products
    # -----------------------------------------------------------------

    def create_product(
        self,
        name: str,
        category: ProductCategory | str = ProductCategory.PRIMARY,
        price: Decimal | int | str = Decimal("0"),
    ) -> ProductInfo:
        clean = _clean_name(name)
        cat = _parse_category(category)
        value = _parse_price(price)
        self._require_unique_name(clean)

        product = Product(name=clean, category=cat.value, price=value)
        try:
            with self.session.begin_nested():
                self.session.add(product)
                self.session.flush()
        except IntegrityError as exc:
            logger.warning("product_name_conflict", extra={"product_name": clean})
            raise ValidationError(f"Product {clean!r} already exists", field="name") from exc

        logger.info(
            "product_created",
            extra={"product_id": str(product.id), "product_name": clean, "category": cat.value},
        )
        return ProductInfo.from_model(product)

    def update_product(
        self,
        product_id: UUID,
        name: str | None = None,
        category: ProductCategory | str | None = None,
        price: Decimal | int | str | None = None,
    ) -> ProductInfo:
        product = self._require_product(product_id)

        if name is not None:
            clean = _clean_name(name)
            if clean != product.name:
                self._require_unique_name(clean)
            product.name = clean
        if category is not None:
            product.category = _parse_category(category).value
        if price is not None:
            product.price = _parse_price(price)

        try:
            with self.session.begin_nested():
                self.session.flush()
        except IntegrityError as exc:
            raise ValidationError(f"Product {product.name!r} already exists", field="name") from exc

        logger.info("product_updated", extra={"product_id": str(product_id)})
        return ProductInfo.from_model(product)

    def delete_product(self, product_id: UUID) -> None:
        product = self._require_product(product_id)
        batch_count = self.session.scalar(
            select(func.count()).select_from(Batch).where(Batch.product_id == product_id)
        ) or 0
        if batch_count:
            logger.warning(
                "product_delete_blocked",
                extra={"product_id": str(product_id), "batch_count": batch_count},
            )
            raise ProductInUseError(str(product_id), batch_count)

        with self.session.begin_nested():
            self.session.delete(product)
            self.session.flush()
        logger.info("product_deleted", extra={"product_id": str(product_id)})

    # -----------------------------------------------------------------
    # Riders
    # -----------------------------------------------------------------

    def create_rider(self, name: str, phone: str | None = None) -> RiderInfo:
        rider = Rider(name=_clean_name(name), phone=(phone or "").strip() or None)
        with self.session.begin_nested():
            self.session.add(rider)
            self.session.flush()
        logger.info("rider_created", extra={"rider_id": str(rider.id)})
        return RiderInfo.from_model(rider)

    def update_rider(
        self,
        rider_id: UUID,
        name: str | None = None,
        phone: str | None = None,
    ) -> RiderInfo:
        rider = self._require_rider(rider_id)
        if name is not None:
            rider.name = _clean_name(name)
        if phone is not None:
            rider.phone = phone.strip() or None
        with self.session.begin_nested():
            self.session.flush()
        logger.info("rider_updated", extra={"rider_id": str(rider_id)})
        return RiderInfo.from_model(rider)

    def delete_rider(self, rider_id: UUID) -> int:
        """
        Delete a rider and its distributions.

        Returns:
            Number of distributions deleted.
        """
        rider = self._require_rider(rider_id)
        open_count = self.session.scalar(
            select(func.count())
            .select_from(Distribution)
            .where(
                Distribution.rider_id == rider_id,
                Distribution.remaining_expression() > 0,
            )
        ) or 0

        with self.session.begin_nested():
            result = self.session.execute(
                delete(Distribution)
                .where(Distribution.rider_id == rider_id)
                .execution_options(synchronize_session=False)
            )
            self.session.delete(rider)
            self.session.flush()

        if open_count:
            logger.warning(
                "rider_deleted_with_open_distributions",
                extra={"rider_id": str(rider_id), "open_distributions": open_count},
            )
        logger.info(
            "rider_deleted",
            extra={"rider_id": str(rider_id), "distributions_deleted": result.rowcount},
        )
        return result.rowcount

    # -----------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------

    def _require_product(self, product_id: UUID) -> Product:
        product = self.session.get(Product, product_id, populate_existing=True)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _require_rider(self, rider_id: UUID) -> Rider:
        rider = self.session.get(Rider, rider_id, populate_existing=True)
        if rider is None:
            raise RiderNotFoundError(str(rider_id))
        return rider

    def _require_unique_name(self, name: str) -> None:
        existing = self.session.scalar(select(Product.id).where(Product.name == name))
        if existing is not None:
            raise ValidationError(f"Product {name!r} already exists", field="name")
