"""
Per-SKU folds over order lines, sale lines and serialized units.

Order and sale lines are loaded into a DataFrame and reduced with
groupby/agg; every call returns new frozen aggregates and nothing here holds
state between calls. Duplicate rows are summed, never deduplicated: upstream
rows are assumed to be row-level accurate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

import numpy as np
import pandas as pd

from .analysis import timestamp_to_date
from .arrival import ArrivalIndex, has_arrived
from .models import OrderLine, SaleLine, SerializedUnit

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OrderAggregate:
    """Paperwork totals for one SKU across all of its order lines."""

    sku: str
    model_name: str
    shipped_qty: int
    arrived_qty: int
    landing_value: float
    fob_value: float
    otw_value: float
    last_arrival_date: date | None
    first_order_date: date | None


@dataclass(frozen=True, slots=True)
class SalesAggregate:
    """Sell-through totals across all sale lines."""

    sold_qty: dict[str, int]
    last_sale_dates: dict[str, date]
    model_names: dict[str, str]
    sold_serials: frozenset[str]
    duplicate_serials: tuple[str, ...]

    def sold_for(self, sku: str) -> int:
        return self.sold_qty.get(sku, 0)


@dataclass(frozen=True, slots=True)
class SerialPartition:
    """Serialized units of one SKU split by the arrival of their order line."""

    sku: str
    arrived_units: tuple[SerializedUnit, ...]
    otw_units: tuple[SerializedUnit, ...]

    @property
    def total(self) -> int:
        return len(self.arrived_units) + len(self.otw_units)


def _text(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value)


def aggregate_orders(order_lines: Iterable[OrderLine]) -> dict[str, OrderAggregate]:
    """Fold order lines into shipped/arrived quantities and values per SKU."""
    rows = [
        (
            line.sku,
            line.model_name or None,
            line.quantity,
            line.quantity * line.landing_unit_price,
            line.quantity * line.fob_unit_price,
            line.actual_arrival,
            line.issue_date,
        )
        for line in order_lines
        if line.sku and line.order_ref
    ]
    if not rows:
        return {}

    df = pd.DataFrame(
        rows,
        columns=["sku", "model_name", "quantity", "landing_value", "fob_value", "actual_arrival", "issue_date"],
    )
    df["actual_arrival"] = pd.to_datetime(df["actual_arrival"])
    df["issue_date"] = pd.to_datetime(df["issue_date"])

    arrived = df["actual_arrival"].notna()
    df["arrived_qty"] = np.where(arrived, df["quantity"], 0)
    df["otw_value"] = np.where(arrived, 0.0, df["fob_value"])

    summary = df.groupby("sku", sort=True).agg(
        model_name=("model_name", "first"),
        shipped_qty=("quantity", "sum"),
        arrived_qty=("arrived_qty", "sum"),
        landing_value=("landing_value", "sum"),
        fob_value=("fob_value", "sum"),
        otw_value=("otw_value", "sum"),
        last_arrival_date=("actual_arrival", "max"),
        first_order_date=("issue_date", "min"),
    )

    return {
        str(sku): OrderAggregate(
            sku=str(sku),
            model_name=_text(row["model_name"]),
            shipped_qty=int(row["shipped_qty"]),
            arrived_qty=int(row["arrived_qty"]),
            landing_value=float(row["landing_value"]),
            fob_value=float(row["fob_value"]),
            otw_value=float(row["otw_value"]),
            last_arrival_date=timestamp_to_date(row["last_arrival_date"]),
            first_order_date=timestamp_to_date(row["first_order_date"]),
        )
        for sku, row in summary.iterrows()
    }


def aggregate_sales(sale_lines: Iterable[SaleLine]) -> SalesAggregate:
    """
    Fold sale lines into sold quantities per SKU and the global sold-serial set.

    A serial number is globally unique, so the sold set is not keyed by SKU.
    The same serial reported on two sale lines is still counted twice in
    `sold_qty`; it is surfaced in `duplicate_serials` so callers can flag it.
    """
    rows = [
        (sale.sku, sale.quantity, sale.model_name or None, sale.serial_number or None, sale.invoice_date)
        for sale in sale_lines
        if sale.sku
    ]
    if not rows:
        return SalesAggregate({}, {}, {}, frozenset(), ())

    df = pd.DataFrame(rows, columns=["sku", "quantity", "model_name", "serial_number", "invoice_date"])
    df["invoice_date"] = pd.to_datetime(df["invoice_date"])

    summary = df.groupby("sku", sort=True).agg(
        sold_qty=("quantity", "sum"),
        last_sale_date=("invoice_date", "max"),
        model_name=("model_name", "first"),
    )

    serial_counts = df["serial_number"].value_counts()
    duplicates = tuple(sorted(str(s) for s in serial_counts[serial_counts > 1].index))
    if duplicates:
        logger.warning(
            "%d serial numbers reported sold more than once; sold quantities include them twice",
            len(duplicates),
        )

    last_sale_dates = {}
    model_names = {}
    for sku, row in summary.iterrows():
        last_sale = timestamp_to_date(row["last_sale_date"])
        if last_sale is not None:
            last_sale_dates[str(sku)] = last_sale
        if _text(row["model_name"]):
            model_names[str(sku)] = _text(row["model_name"])

    return SalesAggregate(
        sold_qty={str(sku): int(qty) for sku, qty in summary["sold_qty"].items()},
        last_sale_dates=last_sale_dates,
        model_names=model_names,
        sold_serials=frozenset(str(s) for s in serial_counts.index),
        duplicate_serials=duplicates,
    )


def partition_serials(
    units: Iterable[SerializedUnit], arrival_index: ArrivalIndex
) -> dict[str, SerialPartition]:
    """
    Split serialized units per SKU into arrived and on-the-way buckets.

    A unit whose order line is absent from the arrival index is on the way:
    unknown arrival is treated as not arrived.
    """
    arrived: dict[str, list[SerializedUnit]] = {}
    otw: dict[str, list[SerializedUnit]] = {}

    for unit in units:
        if not unit.sku or not unit.order_ref:
            continue
        bucket = arrived if has_arrived(arrival_index, unit.order_ref, unit.sku) else otw
        bucket.setdefault(unit.sku, []).append(unit)

    return {
        sku: SerialPartition(
            sku=sku,
            arrived_units=tuple(arrived.get(sku, ())),
            otw_units=tuple(otw.get(sku, ())),
        )
        for sku in sorted(set(arrived) | set(otw))
    }
