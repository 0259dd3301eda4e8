"""SQLAlchemy ORM models for the distribution ledger."""

from distro_kernel.models.batch import DESTRUCTION_MARKER, Batch
from distro_kernel.models.distribution import Distribution
from distro_kernel.models.product import Product, ProductCategory
from distro_kernel.models.rider import Rider

__all__ = [
    "Product",
    "ProductCategory",
    "Batch",
    "DESTRUCTION_MARKER",
    "Rider",
    "Distribution",
]
