"""
Module: distro_engines
Responsibility:
    Pure calculation engines over kernel DTOs: reconciliation, inventory
    summary and production planning.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import distro_kernel/domain and logging.
    MUST NOT import distro_services or touch a Session.

Invariants enforced:
    - Engines never read the clock; dates come in as parameters.
    - Identical inputs always produce identical outputs.
"""

from distro_engines.inventory_summary import InventorySummaryLine, summarize_inventory
from distro_engines.production_needs import (
    ProductionNeed,
    ProductionPlan,
    StockStatus,
    compute_need,
    plan_production,
)
from distro_engines.reconciliation import (
    ReconciliationItem,
    ReconciliationStatus,
    ReconciliationSummary,
    reconcile,
    reconcile_all,
    round_half_up,
    summarize,
)

__all__ = [
    "InventorySummaryLine",
    "summarize_inventory",
    "ProductionNeed",
    "ProductionPlan",
    "StockStatus",
    "compute_need",
    "plan_production",
    "ReconciliationItem",
    "ReconciliationStatus",
    "ReconciliationSummary",
    "reconcile",
    "reconcile_all",
    "round_half_up",
    "summarize",
]
