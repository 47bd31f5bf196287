"""
Promotion scorer: rank overstocked and pre-launch SKUs for marketing.

Two kinds of candidates:
- Pre-Launch: little stock on hand but a large, valuable shipment on the way.
  Weeks of inventory is meaningless before arrival, so it is reported as None.
- Regular: stock on hand, scored on stock pressure, aging and value at risk.
"""

from __future__ import annotations

import logging
from typing import Iterable, Literal

from .analysis import round_half_up
from .models import InventoryItem, PromotionCandidate

logger = logging.getLogger(__name__)

# Pre-launch gate
PRE_LAUNCH_MAX_ON_HAND = 5
PRE_LAUNCH_MIN_OTW_QTY = 20
PRE_LAUNCH_MIN_OTW_VALUE = 10_000

# Stock pressure tiers (weeks of inventory -> score), cap 40
NEVER_SOLD_PRESSURE_SCORE = 40
STOCK_PRESSURE_TIERS = (
    (52, 35, "High inventory ({weeks} weeks) presents a major market penetration opportunity."),
    (26, 25, "Significant stock ({weeks} weeks) allows for a sustained marketing campaign."),
    (12, 15, "Healthy stock level ({weeks} weeks) can support a promotional push."),
)

# Aging tiers (days since last sale -> score), cap 30
NEW_STOCK_AGING_SCORE = 30
NEW_STOCK_MIN_DAYS_SINCE_ARRIVAL = 30
AGING_TIERS = (
    (90, 25, "Stagnant sales require a market re-activation campaign."),
    (60, 15, "Slowing sales suggest a need for a marketing boost."),
    (30, 5, "Proactive push can prevent sales from stagnating."),
)

VALUE_AT_RISK_CAP = 30

URGENT_MIN_SCORE = 70
RECOMMENDED_MIN_SCORE = 40

# A second contributor is only mentioned when it carries real weight
SECONDARY_REASON_MIN_SCORE = 10

PRIORITY_RANK = {"Urgent": 4, "Pre-Launch": 3, "Recommended": 2, "Optional": 1}

FALLBACK_REASONING = "Healthy stock levels. Suitable for brand-building campaigns."


def compact_currency(value: float) -> str:
    """Format money the way a dashboard would show it: $950, $1.2K, $15K, $3.4M."""
    for divisor, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs(value) >= divisor:
            scaled = value / divisor
            text = f"{scaled:.1f}" if abs(scaled) < 10 else f"{scaled:.0f}"
            if text.endswith(".0"):
                text = text[:-2]
            return f"${text}{suffix}"
    return f"${value:.0f}"


def is_pre_launch(item: InventoryItem) -> bool:
    return (
        item.on_hand_qty <= PRE_LAUNCH_MAX_ON_HAND
        and item.otw_qty > PRE_LAUNCH_MIN_OTW_QTY
        and item.otw_value > PRE_LAUNCH_MIN_OTW_VALUE
    )


def stock_pressure(weeks_of_inventory: int | None) -> tuple[int, str]:
    if weeks_of_inventory is None:
        return NEVER_SOLD_PRESSURE_SCORE, "Untapped potential; this item has never been sold."
    for min_weeks, score, template in STOCK_PRESSURE_TIERS:
        if weeks_of_inventory > min_weeks:
            return score, template.format(weeks=weeks_of_inventory)
    return 0, ""


def aging_stock(days_since_last_sale: int | None, days_since_last_arrival: int | None) -> tuple[int, str]:
    if days_since_last_sale is None:
        if (days_since_last_arrival or 0) > NEW_STOCK_MIN_DAYS_SINCE_ARRIVAL:
            return NEW_STOCK_AGING_SCORE, "New stock needs a launch campaign to build momentum."
        return 0, ""
    for min_days, score, reason in AGING_TIERS:
        if days_since_last_sale > min_days:
            return score, reason
    return 0, ""


def promotion_priority(total_score: float) -> Literal["Urgent", "Recommended", "Optional"]:
    if total_score >= URGENT_MIN_SCORE:
        return "Urgent"
    if total_score >= RECOMMENDED_MIN_SCORE:
        return "Recommended"
    return "Optional"


def build_reasoning(contributors: list[tuple[float, str]]) -> str:
    """
    Render the dominant contributors as one explanation.

    The strongest non-zero contributor leads; the runner-up is appended, first
    letter lower-cased, when its score is above SECONDARY_REASON_MIN_SCORE.
    Ties keep the order contributors were given in.
    """
    ranked = sorted((c for c in contributors if c[0] > 0 and c[1]), key=lambda c: -c[0])
    if not ranked:
        return FALLBACK_REASONING
    reasoning = ranked[0][1]
    if len(ranked) > 1 and ranked[1][0] > SECONDARY_REASON_MIN_SCORE:
        second = ranked[1][1]
        reasoning += f" Additionally: {second[0].lower()}{second[1:]}"
    return reasoning


def _pre_launch_candidate(item: InventoryItem) -> PromotionCandidate:
    return PromotionCandidate(
        sku=item.sku,
        model_name=item.model_name,
        priority="Pre-Launch",
        priority_score=0,
        reasoning=(
            f"Key opportunity to build market hype with {item.otw_qty} incoming units "
            "and capture early adopters."
        ),
        in_stock_qty=item.on_hand_qty,
        otw_qty=item.otw_qty,
        in_stock_value=item.on_hand_value,
        otw_value=item.otw_value,
        weeks_of_inventory=None,
        days_since_last_sale=item.days_since_last_sale,
    )


def _sort_key(candidate: PromotionCandidate) -> tuple[int, float, str]:
    value = candidate.otw_value if candidate.priority == "Pre-Launch" else candidate.in_stock_value
    return (-PRIORITY_RANK[candidate.priority], -value, candidate.sku)


def analyze_promotion_candidates(inventory: Iterable[InventoryItem]) -> list[PromotionCandidate]:
    """
    Score promotion candidates and return them in display order.

    Order: Urgent, Pre-Launch, Recommended, Optional; within a priority by the
    value at stake (OTW value for Pre-Launch, on-hand value otherwise).
    """
    candidates = [
        item
        for item in inventory
        if item.on_hand_qty > 0
        or (item.on_hand_qty <= PRE_LAUNCH_MAX_ON_HAND and item.otw_qty > PRE_LAUNCH_MIN_OTW_QTY)
    ]
    if not candidates:
        return []

    max_on_hand_value = max([item.on_hand_value for item in candidates] + [1])

    results: list[PromotionCandidate] = []
    for item in candidates:
        if is_pre_launch(item):
            results.append(_pre_launch_candidate(item))
            continue
        # Without stock there is nothing to promote
        if item.on_hand_qty <= 0:
            continue

        pressure_score, pressure_reason = stock_pressure(item.weeks_of_inventory)
        aging_score, aging_reason = aging_stock(
            item.days_since_last_sale, item.days_since_last_arrival
        )
        value_score = min(
            VALUE_AT_RISK_CAP, item.on_hand_value / max_on_hand_value * VALUE_AT_RISK_CAP
        )
        value_reason = (
            f"Significant capital tied to this stock ({compact_currency(item.on_hand_value)}) "
            "justifies a strategic marketing push."
        )
        total = pressure_score + aging_score + value_score

        results.append(
            PromotionCandidate(
                sku=item.sku,
                model_name=item.model_name,
                priority=promotion_priority(total),
                priority_score=round_half_up(total),
                reasoning=build_reasoning(
                    [
                        (pressure_score, pressure_reason),
                        (aging_score, aging_reason),
                        (value_score, value_reason),
                    ]
                ),
                in_stock_qty=item.on_hand_qty,
                otw_qty=item.otw_qty,
                in_stock_value=item.on_hand_value,
                otw_value=item.otw_value,
                weeks_of_inventory=item.weeks_of_inventory,
                days_since_last_sale=item.days_since_last_sale,
            )
        )

    results.sort(key=_sort_key)
    logger.info("Scored %d promotion candidates", len(results))
    return results
