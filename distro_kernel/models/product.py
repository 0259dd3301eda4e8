"""
Module: distro_kernel.models.product
Responsibility: ORM persistence for the product catalog -- the static
    reference data every batch points at.
Architecture position: Kernel > Models.  May import from db/base.py and
    the enums in domain/dtos.py only.
    MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - name is unique (uq_product_name).
    - category is one of ProductCategory.
    - A product referenced by a batch cannot be deleted (FK RESTRICT on
      batches.product_id; CatalogService reports ProductInUseError first).
"""

from decimal import Decimal

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from distro_kernel.db.base import TrackedBase
from distro_kernel.domain.dtos import ProductCategory


class Product(TrackedBase):
    """
    Catalog entry.

    Guarantees:
        - name, category and price are the only editable fields.
        - price is a Decimal unit price (Numeric(38, 9)).
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("name", name="uq_product_name"),
        Index("idx_product_category", "category"),
    )

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )

    category: Mapped[ProductCategory] = mapped_column(
        String(20),
        nullable=False,
        default=ProductCategory.PRIMARY,
    )

    price: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} ({self.category})>"
