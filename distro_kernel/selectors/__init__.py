"""Selectors for the distribution ledger (read side)."""

from distro_kernel.selectors.batch_selector import BatchSelector
from distro_kernel.selectors.catalog_selector import CatalogSelector
from distro_kernel.selectors.distribution_selector import DistributionSelector

__all__ = [
    "BatchSelector",
    "CatalogSelector",
    "DistributionSelector",
]
