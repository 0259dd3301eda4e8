"""
Module: distro_services
Responsibility:
    Read-side orchestration: loads kernel DTOs through selectors and runs
    the pure engines over them (reconciliation, inventory summary,
    production planning, period reports).

Architecture position:
    Services -- may import distro_kernel and distro_engines.
    Never writes; write paths live in distro_kernel.services.
"""

from distro_services.inventory_summary_service import InventorySummaryService
from distro_services.production_planning_service import ProductionPlanningService
from distro_services.reconciliation_service import ReconciliationService
from distro_services.report_service import PeriodReport, ReportService, RiderSales

__all__ = [
    "InventorySummaryService",
    "ProductionPlanningService",
    "ReconciliationService",
    "PeriodReport",
    "ReportService",
    "RiderSales",
]
