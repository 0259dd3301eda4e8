"""
distro_services.production_planning_service -- production needs from
current stock, the rider roster and the allocation policy.

Architecture position:
    Services -- orchestration over engines + kernel selectors.  Read only.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from distro_engines.production_needs import ProductionPlan, plan_production
from distro_kernel.domain.policy import AllocationPolicy
from distro_kernel.logging_config import get_logger
from distro_kernel.selectors.catalog_selector import CatalogSelector
from distro_services.inventory_summary_service import InventorySummaryService

logger = get_logger("services.production_planning")


class ProductionPlanningService:
    """Builds a ProductionPlan for the whole catalog."""

    def __init__(self, session: Session, policy: AllocationPolicy):
        self._catalog = CatalogSelector(session)
        self._inventory = InventorySummaryService(session)
        self._policy = policy

    def plan(self) -> ProductionPlan:
        rider_count = self._catalog.count_riders()
        if rider_count == 0:
            logger.warning(
                "planning_without_riders",
                extra={"assumed_rider_count": self._policy.default_rider_count},
            )
        plan = plan_production(
            self._catalog.list_products(),
            self._inventory.summarize(),
            rider_count=rider_count,
            policy=self._policy,
        )
        logger.info(
            "production_plan_computed",
            extra={
                "rider_count": plan.rider_count,
                "low_count": len(plan.low),
                "surplus_count": len(plan.surplus),
            },
        )
        return plan
