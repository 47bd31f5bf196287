"""
Engine facade: runs the pipeline stages in order and exposes each output.

    arrival index ─┬─> order aggregates ─┐
                   └─> serial partition ─┼─> reconciled inventory ─┬─> backorders
    sale lines ──────> sales aggregate ──┘                         ├─> promotions
                 └───> sales velocity ─────────────────────────────┴─> opportunities

Usage:
    engine = InventoryEngine()
    inputs = EngineInputs(orders, sales, units, as_of=date(2025, 6, 30))
    inventory = engine.reconcile(inputs).inventory
    result = engine.run(inputs)  # all four outputs at once
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

from ..config import EngineSettings, get_settings
from .aggregation import aggregate_orders, aggregate_sales, partition_serials
from .analysis import SalesMetrics, as_date, compute_sales_metrics, derive_new_model_skus
from .arrival import build_arrival_index
from .backorders import analyze_backorder_candidates
from .errors import EngineInputError
from .models import (
    BackorderRecommendation,
    CustomerProfile,
    CustomerSalesOpportunity,
    EngineDiagnostics,
    InventoryItem,
    OrderLine,
    PromotionCandidate,
    SaleLine,
    SalesOpportunity,
    SerializedUnit,
)
from .opportunities import (
    analyze_sales_opportunities,
    build_customer_profiles,
    flatten_opportunities,
)
from .promotions import analyze_promotion_candidates
from .quality import screen_records
from .reconciliation import reconcile_inventory

logger = logging.getLogger(__name__)

Request = Literal["inventory", "backorders", "promotions", "opportunities", "all"]


@dataclass(frozen=True)
class EngineInputs:
    """
    Everything one invocation reads.

    `as_of` stands in for "now" in every trailing window. `new_model_skus`
    is derived from order issue dates when not supplied.
    """

    order_lines: Iterable[OrderLine] | None
    sale_lines: Iterable[SaleLine] | None
    serialized_units: Iterable[SerializedUnit] | None
    as_of: date | datetime | None
    new_model_skus: frozenset[str] | set[str] | None = None


@dataclass(frozen=True)
class ReconciliationResult:
    """Reconciled inventory plus the shared context the scorers need."""

    inventory: tuple[InventoryItem, ...]
    diagnostics: EngineDiagnostics
    as_of: date
    sale_lines: tuple[SaleLine, ...] = ()
    sales_metrics: dict[str, SalesMetrics] = field(default_factory=dict)
    first_order_dates: dict[str, date] = field(default_factory=dict)
    new_model_skus: frozenset[str] = frozenset()


@dataclass(frozen=True)
class EngineResult:
    """All derived collections for one invocation."""

    inventory: tuple[InventoryItem, ...]
    backorders: tuple[BackorderRecommendation, ...]
    promotions: tuple[PromotionCandidate, ...]
    customer_opportunities: tuple[CustomerSalesOpportunity, ...]
    sales_opportunities: tuple[SalesOpportunity, ...]
    customer_profiles: tuple[CustomerProfile, ...]
    diagnostics: EngineDiagnostics


def _require_collection(value, stage: str, name: str) -> tuple:
    if value is None:
        raise EngineInputError(stage, name, "collection is required")
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise EngineInputError(stage, name, f"expected a collection, got {type(value).__name__}")
    return tuple(value)


class InventoryEngine:
    """
    Pure, repeatable transformation from three input collections to the
    reconciled inventory and its ranked action lists.

    The engine keeps no state between calls; every method recomputes from the
    inputs it is given.
    """

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings or get_settings()

    # -----------------------------------------------------------------
    # Reconciliation
    # -----------------------------------------------------------------

    def reconcile(self, inputs: EngineInputs, stage: str = "reconcile") -> ReconciliationResult:
        """Validate inputs and build one InventoryItem per SKU."""
        orders = _require_collection(inputs.order_lines, stage, "order_lines")
        sales = _require_collection(inputs.sale_lines, stage, "sale_lines")
        units = _require_collection(inputs.serialized_units, stage, "serialized_units")
        if inputs.as_of is None:
            raise EngineInputError(stage, "as_of", "an explicit reference date is required")
        if not isinstance(inputs.as_of, date):
            raise EngineInputError(stage, "as_of", f"expected a date, got {type(inputs.as_of).__name__}")
        as_of = as_date(inputs.as_of)

        screened = screen_records(orders, sales, units)

        arrival_index = build_arrival_index(screened.order_lines)
        order_aggregates = aggregate_orders(screened.order_lines)
        sales_aggregate = aggregate_sales(screened.sale_lines)
        partitions = partition_serials(screened.serialized_units, arrival_index)
        sales_metrics = compute_sales_metrics(
            screened.sale_lines,
            as_of,
            lookback_days=self.settings.lookback_days,
            recent_window_days=self.settings.recent_window_days,
        )
        logger.debug(
            "Stages complete: %d arrived lines, %d order SKUs, %d serialized SKUs, %d selling SKUs",
            len(arrival_index),
            len(order_aggregates),
            len(partitions),
            len(sales_metrics),
        )

        inventory = reconcile_inventory(
            order_aggregates, sales_aggregate, partitions, sales_metrics, as_of
        )

        first_order_dates = {
            sku: aggregate.first_order_date
            for sku, aggregate in order_aggregates.items()
            if aggregate.first_order_date is not None
        }
        if inputs.new_model_skus is not None:
            new_model_skus = frozenset(inputs.new_model_skus)
        else:
            new_model_skus = derive_new_model_skus(
                first_order_dates, as_of, self.settings.new_model_window_days
            )

        diagnostics = screened.diagnostics.model_copy(
            update={"duplicate_sold_serials": sales_aggregate.duplicate_serials}
        )

        return ReconciliationResult(
            inventory=tuple(inventory),
            diagnostics=diagnostics,
            as_of=as_of,
            sale_lines=screened.sale_lines,
            sales_metrics=sales_metrics,
            first_order_dates=first_order_dates,
            new_model_skus=new_model_skus,
        )

    # -----------------------------------------------------------------
    # Scorers (each reconciles first)
    # -----------------------------------------------------------------

    def backorders(self, inputs: EngineInputs) -> list[BackorderRecommendation]:
        return self._backorders(self.reconcile(inputs, stage="backorders"))

    def promotions(self, inputs: EngineInputs) -> list[PromotionCandidate]:
        return analyze_promotion_candidates(self.reconcile(inputs, stage="promotions").inventory)

    def opportunities(self, inputs: EngineInputs) -> list[CustomerSalesOpportunity]:
        reconciled = self.reconcile(inputs, stage="opportunities")
        profiles = build_customer_profiles(reconciled.sale_lines, reconciled.as_of)
        return self._opportunities(reconciled, profiles)

    def run(self, inputs: EngineInputs) -> EngineResult:
        """Reconcile once and derive every output collection."""
        reconciled = self.reconcile(inputs, stage="run")
        profiles = build_customer_profiles(reconciled.sale_lines, reconciled.as_of)
        customer_opportunities = self._opportunities(reconciled, profiles)

        return EngineResult(
            inventory=reconciled.inventory,
            backorders=tuple(self._backorders(reconciled)),
            promotions=tuple(analyze_promotion_candidates(reconciled.inventory)),
            customer_opportunities=tuple(customer_opportunities),
            sales_opportunities=tuple(flatten_opportunities(customer_opportunities)),
            customer_profiles=tuple(profiles),
            diagnostics=reconciled.diagnostics,
        )

    def compute(self, inputs: EngineInputs, request: Request = "all"):
        """Dispatch a named request; used by the background worker."""
        if request == "inventory":
            return list(self.reconcile(inputs).inventory)
        if request == "backorders":
            return self.backorders(inputs)
        if request == "promotions":
            return self.promotions(inputs)
        if request == "opportunities":
            return self.opportunities(inputs)
        if request == "all":
            return self.run(inputs)
        raise EngineInputError("compute", "request", f"unknown request '{request}'")

    def _backorders(self, reconciled: ReconciliationResult) -> list[BackorderRecommendation]:
        return analyze_backorder_candidates(
            reconciled.inventory,
            reconciled.sales_metrics,
            reconciled.new_model_skus,
            reconciled.first_order_dates,
        )

    def _opportunities(
        self, reconciled: ReconciliationResult, profiles: list[CustomerProfile]
    ) -> list[CustomerSalesOpportunity]:
        return analyze_sales_opportunities(
            reconciled.inventory,
            reconciled.sale_lines,
            profiles,
            reconciled.as_of,
            surplus_min_units=self.settings.surplus_min_units,
            policy=self.settings.opportunity,
        )
