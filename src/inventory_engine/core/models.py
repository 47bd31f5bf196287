"""
Typed records flowing through the engine.

Inputs are frozen dataclasses: they arrive already parsed and are never
modified. Outputs are Pydantic models so callers (dashboards, caches, export
jobs) get validated, serializable records with field descriptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


# --- Inputs ---


@dataclass(frozen=True, slots=True)
class OrderLine:
    """One line of a purchase order, tracked from factory to local warehouse."""

    order_ref: str
    sku: str
    quantity: int
    fob_unit_price: float
    landing_unit_price: float
    ship_date: date | None = None
    receipt_date: date | None = None
    eta: date | None = None
    actual_arrival: date | None = None
    factory_status: str = ""
    local_status: str = ""
    model_name: str = ""
    issue_date: date | None = None  # pro-forma issue date


@dataclass(frozen=True, slots=True)
class SaleLine:
    """One invoiced unit (or group of units) sold to a buyer."""

    invoice_date: date | None
    quantity: int
    buyer_id: str
    buyer_name: str
    invoice_number: str
    serial_number: str
    sku: str
    unit_price: float
    total_revenue: float
    model_name: str = ""


@dataclass(frozen=True, slots=True)
class SerializedUnit:
    """A physically tagged unit tied to exactly one order line."""

    order_ref: str
    sku: str
    serial_number: str
    full_serialized_string: str
    recorded_at: datetime | None = None


# --- Outputs ---


class StockStatus(Enum):
    """Stock health band derived from weeks of inventory."""

    OUT_OF_STOCK = "out_of_stock"  # on hand <= 0, regardless of run rate
    NO_SALES = "no_sales"  # stock on hand but no trailing sales
    CRITICAL = "critical"  # < 4 weeks
    LOW = "low"  # 4-12 weeks
    HEALTHY = "healthy"  # > 12 weeks


CustomerTier = Literal["Platinum", "Gold", "Silver", "Bronze"]


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class InventoryItem(_Record):
    """Reconciled inventory truth for one SKU."""

    sku: str
    model_name: str = ""
    total_shipped_qty: int = Field(description="Units on all order lines")
    total_arrived_qty: int = Field(description="Units on order lines marked arrived")
    total_sold_qty: int = Field(description="Units on all sale lines")
    total_serialized_qty: int
    total_arrived_serialized_qty: int
    total_otw_serialized_qty: int
    on_hand_qty: int = Field(
        description="Arrived, serialized units not matched to any sale"
    )
    unaccounted_stock_qty: int = Field(
        description="(arrived - sold) minus on hand; signed paperwork/physical gap"
    )
    otw_qty: int = Field(description="Serialized units on lines not yet arrived")
    total_landing_value: float
    total_fob_value: float
    average_landing_cost: float
    average_fob_cost: float
    on_hand_value: float = Field(description="On hand units at average FOB cost")
    otw_value: float = Field(description="FOB value of order lines not yet arrived")
    weekly_run_rate: float
    weeks_of_inventory: int | None = Field(
        default=None, description="None without trailing sales or stock"
    )
    stock_status: StockStatus
    last_sale_date: date | None = None
    days_since_last_sale: int | None = None
    last_arrival_date: date | None = None
    days_since_last_arrival: int | None = None


class BackorderRecommendation(_Record):
    """An out-of-stock SKU that is still selling and should be re-ordered."""

    sku: str
    model_name: str = ""
    priority: Literal["High", "Medium", "Low"]
    priority_score: int
    reasoning: str
    recent_sales_units: int = Field(description="Units sold in the trailing 90 days")
    sales_last_30_days: int
    sales_previous_30_days: int
    sales_trend: Literal["Increasing", "Decreasing", "Stable"]
    estimated_backorder_value: float
    average_landing_cost: float
    in_stock_qty: int
    affected_customers: int
    first_order_date: date | None = None


class PromotionCandidate(_Record):
    """An overstocked or pre-launch SKU that deserves marketing attention."""

    sku: str
    model_name: str = ""
    priority: Literal["Urgent", "Pre-Launch", "Recommended", "Optional"]
    priority_score: int
    reasoning: str
    in_stock_qty: int
    otw_qty: int
    in_stock_value: float
    otw_value: float
    weeks_of_inventory: int | None = None
    days_since_last_sale: int | None = None


class CustomerProfile(_Record):
    """Purchase history summary for one buyer."""

    customer_id: str
    customer_name: str
    total_revenue: float
    total_units: int
    invoice_count: int
    first_purchase_date: date | None = None
    last_purchase_date: date | None = None
    days_since_last_purchase: int | None = None
    is_new: bool = False
    is_at_risk: bool = False
    tier: CustomerTier = "Bronze"


class SalesOpportunity(_Record):
    """A surplus SKU matched to a customer who has bought it before."""

    customer_id: str
    customer_name: str
    customer_tier: CustomerTier
    sku: str
    model_name: str = ""
    priority: Literal["High", "Medium", "Low"]
    priority_score: int = Field(description="Per-pair opportunity score")
    reasoning: str
    in_stock_qty: int
    otw_qty: int
    average_landing_cost: float
    surplus_stock_value: float
    customer_past_units: int
    customer_last_purchase_date: date | None = None


class CustomerSalesOpportunity(_Record):
    """All surplus opportunities for one customer, scored as a whole."""

    customer_id: str
    customer_name: str
    customer_tier: CustomerTier
    priority: Literal["High", "Medium", "Low"]
    priority_score: int = Field(description="Customer opportunity score")
    reasoning: str
    opportunities: tuple[SalesOpportunity, ...]
    opportunity_count: int
    total_opportunity_value: float


class EngineDiagnostics(_Record):
    """Row-level data quality counters collected while screening inputs."""

    order_lines_received: int = 0
    sale_lines_received: int = 0
    serialized_units_received: int = 0
    excluded_order_lines: int = 0
    excluded_sale_lines: int = 0
    excluded_serialized_units: int = 0
    duplicate_sold_serials: tuple[str, ...] = ()

    @property
    def excluded_total(self) -> int:
        return (
            self.excluded_order_lines
            + self.excluded_sale_lines
            + self.excluded_serialized_units
        )
