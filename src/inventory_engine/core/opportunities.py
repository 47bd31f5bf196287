"""
Customer sales opportunities: match surplus stock to past buyers.

A customer who already bought a model is the most likely buyer for surplus
units of that same model. Every (customer, surplus SKU) pair with purchase
history becomes a SalesOpportunity; pairs are then rolled up per customer
using a configurable CustomerScorePolicy.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Literal, Sequence

import pandas as pd

from ..config import CustomerScorePolicy
from .analysis import as_date, days_between, round_half_up, timestamp_to_date
from .models import (
    CustomerProfile,
    CustomerSalesOpportunity,
    CustomerTier,
    InventoryItem,
    SaleLine,
    SalesOpportunity,
)
from .promotions import compact_currency

logger = logging.getLogger(__name__)

# Customer tiers by revenue rank (cumulative share of customers)
TIER_CUTOFFS: tuple[tuple[CustomerTier, float], ...] = (
    ("Platinum", 0.05),
    ("Gold", 0.20),
    ("Silver", 0.50),
)
NEW_CUSTOMER_WINDOW_DAYS = 90
AT_RISK_AFTER_DAYS = 180

DEFAULT_SURPLUS_MIN_UNITS = 25

# Per-pair score components
TIER_POINTS = {"Platinum": 4, "Gold": 3, "Silver": 2, "Bronze": 1}
TIER_WEIGHT = 7.5
STOCK_COMPONENT_CAP = 15
STOCK_UNITS_PER_POINT = 20
RECENCY_WEIGHT = 35
PAST_UNITS_CAP = 20
PAST_UNITS_LOG_MULTIPLIER = 10

HIGH_OPPORTUNITY_MIN_SCORE = 75
MEDIUM_OPPORTUNITY_MIN_SCORE = 50


@dataclass(frozen=True, slots=True)
class PurchaseHistory:
    """What one customer bought of one SKU."""

    units: int
    last_purchase_date: date | None


def _sales_frame(sale_lines: Iterable[SaleLine]) -> pd.DataFrame:
    """Sale lines with a buyer and a SKU, one row each."""
    rows = [
        (
            sale.buyer_id,
            sale.buyer_name,
            sale.sku,
            sale.quantity,
            sale.total_revenue,
            sale.invoice_number or None,
            sale.invoice_date,
        )
        for sale in sale_lines
        if sale.buyer_id and sale.sku
    ]
    df = pd.DataFrame(
        rows,
        columns=["buyer_id", "buyer_name", "sku", "quantity", "total_revenue", "invoice_number", "invoice_date"],
    )
    df["invoice_date"] = pd.to_datetime(df["invoice_date"])
    return df


def build_customer_profiles(
    sale_lines: Iterable[SaleLine],
    as_of: date,
    new_window_days: int = NEW_CUSTOMER_WINDOW_DAYS,
    at_risk_after_days: int = AT_RISK_AFTER_DAYS,
) -> list[CustomerProfile]:
    """
    Summarize purchase history per buyer and assign revenue tiers.

    Returns profiles ordered by revenue rank (highest first). The top 5% of
    buyers are Platinum, up to 20% Gold, up to 50% Silver, the rest Bronze.
    """
    as_of = as_date(as_of)
    df = _sales_frame(sale_lines)
    if len(df) == 0:
        return []

    summary = (
        df.groupby("buyer_id", sort=False)
        .agg(
            customer_name=("buyer_name", "first"),
            total_revenue=("total_revenue", "sum"),
            total_units=("quantity", "sum"),
            invoice_count=("invoice_number", "nunique"),
            first_purchase_date=("invoice_date", "min"),
            last_purchase_date=("invoice_date", "max"),
        )
        .reset_index()
        .sort_values(["total_revenue", "buyer_id"], ascending=[False, True])
    )

    cutoffs = [(tier, math.ceil(len(summary) * share)) for tier, share in TIER_CUTOFFS]

    profiles: list[CustomerProfile] = []
    for position, row in enumerate(summary.itertuples(index=False)):
        tier: CustomerTier = "Bronze"
        for candidate_tier, cutoff in cutoffs:
            if position < cutoff:
                tier = candidate_tier
                break

        first_seen = timestamp_to_date(row.first_purchase_date)
        last_seen = timestamp_to_date(row.last_purchase_date)
        days_since_last = days_between(last_seen, as_of)
        days_since_first = days_between(first_seen, as_of)
        profiles.append(
            CustomerProfile(
                customer_id=str(row.buyer_id),
                customer_name=str(row.customer_name),
                total_revenue=float(row.total_revenue),
                total_units=int(row.total_units),
                invoice_count=int(row.invoice_count),
                first_purchase_date=first_seen,
                last_purchase_date=last_seen,
                days_since_last_purchase=days_since_last,
                is_new=days_since_first is not None and days_since_first <= new_window_days,
                is_at_risk=days_since_last is None or days_since_last > at_risk_after_days,
                tier=tier,
            )
        )
    return profiles


def purchase_history(sale_lines: Iterable[SaleLine]) -> dict[tuple[str, str], PurchaseHistory]:
    """Units bought and latest purchase date per (customer, SKU)."""
    df = _sales_frame(sale_lines)
    if len(df) == 0:
        return {}

    history = df.groupby(["buyer_id", "sku"], sort=True).agg(
        units=("quantity", "sum"),
        last_purchase_date=("invoice_date", "max"),
    )
    return {
        (str(buyer), str(sku)): PurchaseHistory(
            units=int(row["units"]),
            last_purchase_date=timestamp_to_date(row["last_purchase_date"]),
        )
        for (buyer, sku), row in history.iterrows()
    }


def opportunity_priority(score: int) -> Literal["High", "Medium", "Low"]:
    if score >= HIGH_OPPORTUNITY_MIN_SCORE:
        return "High"
    if score >= MEDIUM_OPPORTUNITY_MIN_SCORE:
        return "Medium"
    return "Low"


def _top_reasons(contributors: list[tuple[float, str]]) -> str:
    ranked = sorted((c for c in contributors if c[0] > 0), key=lambda c: -c[0])
    return " ".join(reason for _, reason in ranked[:2])


def _score_pair(
    profile: CustomerProfile,
    item: InventoryItem,
    history: PurchaseHistory,
    as_of: date,
    surplus_min_units: int,
) -> SalesOpportunity:
    available = item.on_hand_qty + item.otw_qty
    tier_component = TIER_POINTS[profile.tier] * TIER_WEIGHT
    stock_component = min(STOCK_COMPONENT_CAP, (available - surplus_min_units) / STOCK_UNITS_PER_POINT)

    days_since = days_between(history.last_purchase_date, as_of)
    if days_since is None:
        recency_component = 0.0
    else:
        recency_component = RECENCY_WEIGHT / math.sqrt(max(days_since, 0) + 1)

    past_units = max(history.units, 0)
    past_units_component = min(PAST_UNITS_CAP, math.log10(past_units + 1) * PAST_UNITS_LOG_MULTIPLIER)

    score = round_half_up(tier_component + stock_component + recency_component + past_units_component)
    reasoning = _top_reasons(
        [
            (tier_component, f"{profile.tier} customer."),
            (stock_component, f"{available} units available to place."),
            (recency_component, f"Last bought this model {days_since} days ago."),
            (past_units_component, f"Has bought {history.units} units of this model before."),
        ]
    )

    return SalesOpportunity(
        customer_id=profile.customer_id,
        customer_name=profile.customer_name,
        customer_tier=profile.tier,
        sku=item.sku,
        model_name=item.model_name,
        priority=opportunity_priority(score),
        priority_score=score,
        reasoning=reasoning,
        in_stock_qty=item.on_hand_qty,
        otw_qty=item.otw_qty,
        average_landing_cost=item.average_landing_cost,
        surplus_stock_value=available * item.average_landing_cost,
        customer_past_units=history.units,
        customer_last_purchase_date=history.last_purchase_date,
    )


def customer_opportunity_score(
    opportunities: Sequence[SalesOpportunity],
    total_value: float,
    max_total_value: float,
    policy: CustomerScorePolicy,
) -> int:
    """Roll pair scores up into one customer score using `policy`."""
    if not opportunities:
        return 0
    mean_score = sum(op.priority_score for op in opportunities) / len(opportunities)
    value_share = total_value / max_total_value if max_total_value > 0 else 0.0
    return round_half_up(
        policy.mean_score_weight * mean_score
        + policy.count_points * min(len(opportunities), policy.count_cap)
        + policy.value_points * value_share
    )


def analyze_sales_opportunities(
    inventory: Iterable[InventoryItem],
    sale_lines: Iterable[SaleLine],
    profiles: Iterable[CustomerProfile],
    as_of: date,
    surplus_min_units: int = DEFAULT_SURPLUS_MIN_UNITS,
    policy: CustomerScorePolicy | None = None,
) -> list[CustomerSalesOpportunity]:
    """
    Match surplus SKUs to customers who bought them before.

    Returns one CustomerSalesOpportunity per customer with at least one match,
    ranked by customer score, then total value, then customer id.
    """
    as_of = as_date(as_of)
    policy = policy or CustomerScorePolicy()
    surplus = sorted(
        (item for item in inventory if item.on_hand_qty + item.otw_qty > surplus_min_units),
        key=lambda item: item.sku,
    )
    if not surplus:
        return []

    history = purchase_history(sale_lines)

    matched: list[tuple[CustomerProfile, list[SalesOpportunity]]] = []
    for profile in profiles:
        pairs = [
            _score_pair(profile, item, history[(profile.customer_id, item.sku)], as_of, surplus_min_units)
            for item in surplus
            if (profile.customer_id, item.sku) in history
        ]
        if pairs:
            pairs.sort(key=lambda op: (-op.priority_score, op.sku))
            matched.append((profile, pairs))

    if not matched:
        return []

    totals = {profile.customer_id: sum(op.surplus_stock_value for op in ops) for profile, ops in matched}
    max_total = max(totals.values())

    results: list[CustomerSalesOpportunity] = []
    for profile, ops in matched:
        total_value = totals[profile.customer_id]
        score = customer_opportunity_score(ops, total_value, max_total, policy)
        results.append(
            CustomerSalesOpportunity(
                customer_id=profile.customer_id,
                customer_name=profile.customer_name,
                customer_tier=profile.tier,
                priority=opportunity_priority(score),
                priority_score=score,
                reasoning=(
                    f"{len(ops)} surplus product(s) this customer bought before, worth "
                    f"{compact_currency(total_value)} at landing cost; lead with {ops[0].sku}."
                ),
                opportunities=tuple(ops),
                opportunity_count=len(ops),
                total_opportunity_value=total_value,
            )
        )

    results.sort(key=lambda co: (-co.priority_score, -co.total_opportunity_value, co.customer_id))
    logger.info(
        "Matched %d customers to %d surplus SKUs",
        len(results),
        len(surplus),
    )
    return results


def flatten_opportunities(
    customer_opportunities: Iterable[CustomerSalesOpportunity],
) -> list[SalesOpportunity]:
    """All customer/SKU pairs in one list, best pair first."""
    pairs = [op for co in customer_opportunities for op in co.opportunities]
    pairs.sort(key=lambda op: (-op.priority_score, op.customer_id, op.sku))
    return pairs
