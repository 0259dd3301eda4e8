"""Pure domain layer: DTOs, clock, policy, date windows. No I/O."""

from distro_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from distro_kernel.domain.dtos import (
    BatchInfo,
    BulkAllocationResult,
    BundleAllocationResult,
    BundleFailure,
    DistributionInfo,
    OutcomeAction,
    ProductCategory,
    ProductInfo,
    RiderInfo,
    SkippedAllocation,
)
from distro_kernel.domain.policy import AllocationPolicy
from distro_kernel.domain.windows import DateWindow, WindowKind

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "ProductCategory",
    "OutcomeAction",
    "ProductInfo",
    "RiderInfo",
    "BatchInfo",
    "DistributionInfo",
    "SkippedAllocation",
    "BulkAllocationResult",
    "BundleFailure",
    "BundleAllocationResult",
    "AllocationPolicy",
    "DateWindow",
    "WindowKind",
]
