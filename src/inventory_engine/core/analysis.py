"""
Sales velocity and date helpers shared by the reconciler and the scorers.

All windows are measured against an explicit `as_of` date: nothing in this
module reads the system clock.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Mapping
import math

import numpy as np
import pandas as pd

from .models import SaleLine

DEFAULT_LOOKBACK_DAYS = 90
DEFAULT_RECENT_WINDOW_DAYS = 30
NEW_MODEL_WINDOW_DAYS = 90
DAYS_PER_WEEK = 7


@dataclass(frozen=True, slots=True)
class SalesMetrics:
    """Trailing-window sell-through for one SKU."""

    sku: str
    last_30: int  # days 0-30 before as_of
    prev_30: int  # days 31-60 before as_of
    total_90: int
    affected_customers: int
    weekly_run_rate: float


def as_date(value: date | datetime) -> date:
    """Collapse datetimes to their calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


def timestamp_to_date(value) -> date | None:
    """Calendar date of a pandas aggregate cell; None for NaT / NaN."""
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).date()


def days_between(earlier: date | None, as_of: date) -> int | None:
    """Whole days from `earlier` to `as_of`; None when there is no date."""
    if earlier is None:
        return None
    return (as_of - as_date(earlier)).days


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def safe_divide(numerator: float, denominator: float) -> float:
    """Division that defines x / 0 as 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def compute_sales_metrics(
    sale_lines: Iterable[SaleLine],
    as_of: date,
    lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    recent_window_days: int = DEFAULT_RECENT_WINDOW_DAYS,
) -> dict[str, SalesMetrics]:
    """
    Compute trailing-window sales velocity per SKU.

    Only SKUs with at least one dated sale inside the lookback window get an
    entry; an absent SKU means "no velocity signal".

    Returns mapping of SKU to:
    - last_30 / prev_30: units in the most recent and the preceding window
    - total_90: units in the whole lookback window
    - affected_customers: distinct buyers in the lookback window
    - weekly_run_rate: total_90 spread over the lookback window in weeks
    """
    as_of = as_date(as_of)
    rows = [
        (sale.sku, (as_of - as_date(sale.invoice_date)).days, sale.quantity, sale.buyer_id)
        for sale in sale_lines
        if sale.sku and sale.invoice_date is not None
    ]
    if not rows:
        return {}

    df = pd.DataFrame(rows, columns=["sku", "days_ago", "quantity", "buyer_id"])

    # Filter to the lookback period (future-dated invoices count as recent)
    recent = df[df["days_ago"] <= lookback_days].copy()
    if len(recent) == 0:
        return {}

    recent["last_30"] = np.where(
        recent["days_ago"] <= recent_window_days, recent["quantity"], 0
    )
    recent["prev_30"] = np.where(
        (recent["days_ago"] > recent_window_days)
        & (recent["days_ago"] <= 2 * recent_window_days),
        recent["quantity"],
        0,
    )

    velocity = recent.groupby("sku", sort=True).agg(
        total_90=("quantity", "sum"),
        last_30=("last_30", "sum"),
        prev_30=("prev_30", "sum"),
        affected_customers=("buyer_id", "nunique"),
    )

    weeks_in_window = lookback_days / DAYS_PER_WEEK
    metrics: dict[str, SalesMetrics] = {}
    for sku, row in velocity.iterrows():
        total = int(row["total_90"])
        metrics[str(sku)] = SalesMetrics(
            sku=str(sku),
            last_30=int(row["last_30"]),
            prev_30=int(row["prev_30"]),
            total_90=total,
            affected_customers=int(row["affected_customers"]),
            weekly_run_rate=total / weeks_in_window if total > 0 else 0.0,
        )
    return metrics


def derive_new_model_skus(
    first_order_dates: Mapping[str, date],
    as_of: date,
    window_days: int = NEW_MODEL_WINDOW_DAYS,
) -> frozenset[str]:
    """SKUs whose first order was issued within `window_days` of `as_of`."""
    as_of = as_date(as_of)
    return frozenset(
        sku
        for sku, first_date in first_order_dates.items()
        if (as_of - as_date(first_date)).days <= window_days
    )
