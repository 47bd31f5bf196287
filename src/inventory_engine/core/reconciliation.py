"""
Inventory reconciler: combines paperwork and physical serialization.

Three sources describe the same stock from different angles:
- order lines say how much was shipped and how much arrived
- sale lines say how much was sold, and which serial numbers left
- serialized units say which physical units exist and on which order line

The only quantity treated as confirmed stock is `on_hand_qty`: arrived,
serialized units whose serial was never sold. The gap between that and the
paperwork estimate is reported as `unaccounted_stock_qty` and never
"corrected" here.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Mapping

from .aggregation import OrderAggregate, SalesAggregate, SerialPartition
from .analysis import SalesMetrics, days_between, safe_divide
from .models import InventoryItem, StockStatus

logger = logging.getLogger(__name__)

# Weeks-of-inventory bands: < 4 critical, 4..12 low, > 12 healthy
CRITICAL_WEEKS_BELOW = 4
LOW_WEEKS_UP_TO = 12


def classify_stock_status(on_hand_qty: int, weeks_of_inventory: int | None) -> StockStatus:
    """Band a SKU by weeks of inventory; no stock short-circuits the ratio."""
    if on_hand_qty <= 0:
        return StockStatus.OUT_OF_STOCK
    if weeks_of_inventory is None:
        return StockStatus.NO_SALES
    if weeks_of_inventory < CRITICAL_WEEKS_BELOW:
        return StockStatus.CRITICAL
    if weeks_of_inventory <= LOW_WEEKS_UP_TO:
        return StockStatus.LOW
    return StockStatus.HEALTHY


def weeks_of_inventory(on_hand_qty: int, metrics: SalesMetrics | None) -> int | None:
    """Whole weeks the on-hand stock lasts at the trailing run rate."""
    if on_hand_qty <= 0 or metrics is None or metrics.weekly_run_rate <= 0:
        return None
    return math.floor(on_hand_qty / metrics.weekly_run_rate)


def reconcile_inventory(
    orders: Mapping[str, OrderAggregate],
    sales: SalesAggregate,
    partitions: Mapping[str, SerialPartition],
    sales_metrics: Mapping[str, SalesMetrics],
    as_of: date,
) -> list[InventoryItem]:
    """
    Build the canonical InventoryItem for every SKU seen in any source.

    SKUs known only from a sale or a serialized unit still get a record; the
    fields no source contributes default to 0 or None.
    """
    skus = sorted(set(orders) | set(sales.sold_qty) | set(partitions))
    items: list[InventoryItem] = []

    for sku in skus:
        order = orders.get(sku)
        partition = partitions.get(sku)
        arrived_units = partition.arrived_units if partition else ()
        otw_units = partition.otw_units if partition else ()

        on_hand_qty = sum(
            1 for unit in arrived_units if unit.full_serialized_string not in sales.sold_serials
        )
        shipped_qty = order.shipped_qty if order else 0
        arrived_qty = order.arrived_qty if order else 0
        sold_qty = sales.sold_for(sku)
        landing_value = order.landing_value if order else 0.0
        fob_value = order.fob_value if order else 0.0

        theoretical_arrived_stock = arrived_qty - sold_qty
        unaccounted = theoretical_arrived_stock - on_hand_qty

        average_fob_cost = safe_divide(fob_value, shipped_qty)
        metrics = sales_metrics.get(sku)
        woi = weeks_of_inventory(on_hand_qty, metrics)
        last_sale_date = sales.last_sale_dates.get(sku)
        last_arrival_date = order.last_arrival_date if order else None

        model_name = (order.model_name if order else "") or sales.model_names.get(sku, "")

        items.append(
            InventoryItem(
                sku=sku,
                model_name=model_name,
                total_shipped_qty=shipped_qty,
                total_arrived_qty=arrived_qty,
                total_sold_qty=sold_qty,
                total_serialized_qty=len(arrived_units) + len(otw_units),
                total_arrived_serialized_qty=len(arrived_units),
                total_otw_serialized_qty=len(otw_units),
                on_hand_qty=on_hand_qty,
                unaccounted_stock_qty=unaccounted,
                otw_qty=len(otw_units),
                total_landing_value=landing_value,
                total_fob_value=fob_value,
                average_landing_cost=safe_divide(landing_value, shipped_qty),
                average_fob_cost=average_fob_cost,
                on_hand_value=on_hand_qty * average_fob_cost,
                otw_value=order.otw_value if order else 0.0,
                weekly_run_rate=metrics.weekly_run_rate if metrics else 0.0,
                weeks_of_inventory=woi,
                stock_status=classify_stock_status(on_hand_qty, woi),
                last_sale_date=last_sale_date,
                days_since_last_sale=days_between(last_sale_date, as_of),
                last_arrival_date=last_arrival_date,
                days_since_last_arrival=days_between(last_arrival_date, as_of),
            )
        )

    discrepancies = sum(1 for item in items if item.unaccounted_stock_qty != 0)
    logger.info(
        "Reconciled %d SKUs (%d with unaccounted stock)", len(items), discrepancies
    )
    return items
