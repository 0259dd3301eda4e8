"""CatalogSelector -- read side of products and riders."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from distro_kernel.domain.dtos import ProductInfo, RiderInfo
from distro_kernel.models.product import Product
from distro_kernel.models.rider import Rider
from distro_kernel.selectors.base import BaseSelector


class CatalogSelector(BaseSelector):
    """Product and rider lookups, ordered by name."""

    def get_product(self, product_id: UUID) -> ProductInfo | None:
        product = self.session.get(Product, product_id, populate_existing=True)
        return ProductInfo.from_model(product) if product is not None else None

    def get_product_by_name(self, name: str) -> ProductInfo | None:
        product = self.session.scalars(
            select(Product).where(Product.name == name)
        ).one_or_none()
        return ProductInfo.from_model(product) if product is not None else None

    def list_products(self) -> list[ProductInfo]:
        stmt = select(Product).order_by(Product.name.asc(), Product.id.asc())
        return [ProductInfo.from_model(p) for p in self.session.scalars(stmt)]

    def get_rider(self, rider_id: UUID) -> RiderInfo | None:
        rider = self.session.get(Rider, rider_id, populate_existing=True)
        return RiderInfo.from_model(rider) if rider is not None else None

    def list_riders(self) -> list[RiderInfo]:
        stmt = select(Rider).order_by(Rider.name.asc(), Rider.id.asc())
        return [RiderInfo.from_model(r) for r in self.session.scalars(stmt)]

    def count_riders(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Rider)) or 0
