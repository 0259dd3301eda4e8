"""
AllocationPolicy -- per-rider bundle quantities and planning buffers.

The policy is data.  It is built by distro_config from YAML and passed into
DistributionLedgerService.allocate_default_bundle() and the production
planner; nothing in the kernel reads a global table.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from distro_kernel.domain.dtos import ProductCategory, ProductInfo
from distro_kernel.exceptions import ValidationError


def _check_count(value: object, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must be a non-negative integer, got {value!r}", field=name)


@dataclass(frozen=True)
class AllocationPolicy:
    """
    How much of each product a rider takes, and how production is buffered.

    product_allocation maps product name to units per rider.  Primary
    products missing from the table get 0 (they are skipped by bundle
    allocation); add-ons missing from it get addon_default.
    """

    product_allocation: Mapping[str, int] = field(default_factory=dict)
    addon_default: int = 5
    buffer_pct: Decimal = Decimal("0.15")
    buffer_min: int = 20
    surplus_factor: Decimal = Decimal("1.3")
    default_rider_count: int = 4

    def __post_init__(self) -> None:
        for name, qty in self.product_allocation.items():
            _check_count(qty, f"product_allocation[{name}]")
        _check_count(self.addon_default, "addon_default")
        _check_count(self.buffer_min, "buffer_min")
        _check_count(self.default_rider_count, "default_rider_count")

        pct = Decimal(str(self.buffer_pct))
        if pct < 0:
            raise ValidationError("buffer_pct must not be negative", field="buffer_pct")
        factor = Decimal(str(self.surplus_factor))
        if factor < 1:
            raise ValidationError("surplus_factor must be at least 1", field="surplus_factor")

        object.__setattr__(self, "buffer_pct", pct)
        object.__setattr__(self, "surplus_factor", factor)
        object.__setattr__(
            self, "product_allocation", MappingProxyType(dict(self.product_allocation))
        )

    def allocation_for(self, product: ProductInfo) -> int:
        """Units per rider for product under this policy."""
        if product.category == ProductCategory.ADDON:
            return self.product_allocation.get(product.name, self.addon_default)
        return self.product_allocation.get(product.name, 0)
