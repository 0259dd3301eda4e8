"""Write-side kernel services.  All flush within the caller's transaction."""

from distro_kernel.services.base import BaseService
from distro_kernel.services.batch_ledger import BatchLedgerService
from distro_kernel.services.catalog_service import CatalogService
from distro_kernel.services.distribution_ledger import DistributionLedgerService

__all__ = [
    "BaseService",
    "BatchLedgerService",
    "CatalogService",
    "DistributionLedgerService",
]
