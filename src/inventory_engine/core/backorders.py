"""
Backorder scorer: rank out-of-stock SKUs that are still selling.

Score = volume (cap 40) + velocity (0/15/30) + revenue share (cap 20)
        + new model bonus (10)

The constants below define the ranking. Changing any of them changes which
SKUs get re-ordered first, so treat edits as a behavior change.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Iterable, Literal, Mapping

from .analysis import SalesMetrics, round_half_up
from .models import BackorderRecommendation, InventoryItem

logger = logging.getLogger(__name__)

VOLUME_SCORE_CAP = 40
VOLUME_LOG_MULTIPLIER = 6

VELOCITY_ACCELERATING_SCORE = 30
VELOCITY_STABLE_SCORE = 15
VELOCITY_DECELERATING_SCORE = 0
TREND_TOLERANCE = 1.1  # one window must beat the other by 10%

REVENUE_SCORE_WEIGHT = 20
NEW_MODEL_BONUS = 10

HIGH_PRIORITY_MIN_SCORE = 70
MEDIUM_PRIORITY_MIN_SCORE = 35

SalesTrend = Literal["Increasing", "Decreasing", "Stable"]


def volume_score(total_90: int) -> float:
    # Returns can leave net demand below zero; that earns no volume points
    return min(VOLUME_SCORE_CAP, math.log2(max(total_90, 0) + 1) * VOLUME_LOG_MULTIPLIER)


def velocity_band(last_30: int, prev_30: int) -> tuple[int, SalesTrend]:
    """Three-way banding of the last 30 days against the 30 days before."""
    if last_30 > prev_30 * TREND_TOLERANCE:
        return VELOCITY_ACCELERATING_SCORE, "Increasing"
    if prev_30 > last_30 * TREND_TOLERANCE:
        return VELOCITY_DECELERATING_SCORE, "Decreasing"
    return VELOCITY_STABLE_SCORE, "Stable"


def backorder_priority(score: int) -> Literal["High", "Medium", "Low"]:
    if score >= HIGH_PRIORITY_MIN_SCORE:
        return "High"
    if score >= MEDIUM_PRIORITY_MIN_SCORE:
        return "Medium"
    return "Low"


def _reasoning(contributors: list[tuple[float, str]]) -> str:
    ranked = sorted((c for c in contributors if c[0] > 0), key=lambda c: -c[0])
    if not ranked:
        return "Out of stock with recent sales; monitor before re-ordering."
    return " ".join(reason for _, reason in ranked[:2])


def analyze_backorder_candidates(
    inventory: Iterable[InventoryItem],
    sales_metrics: Mapping[str, SalesMetrics],
    new_model_skus: frozenset[str] | set[str],
    first_order_dates: Mapping[str, date] | None = None,
) -> list[BackorderRecommendation]:
    """
    Score SKUs with no stock on hand and at least one sale in the lookback window.

    Returns recommendations ranked by priority score (highest first); an empty
    list when nothing qualifies.
    """
    first_order_dates = first_order_dates or {}
    candidates = [
        (item, sales_metrics[item.sku])
        for item in inventory
        if item.on_hand_qty <= 0 and item.sku in sales_metrics
    ]
    if not candidates:
        return []

    max_value = max(
        [metrics.total_90 * item.average_landing_cost for item, metrics in candidates] + [1]
    )

    recommendations: list[BackorderRecommendation] = []
    for item, metrics in candidates:
        volume = volume_score(metrics.total_90)
        velocity, trend = velocity_band(metrics.last_30, metrics.prev_30)
        estimated_value = metrics.total_90 * item.average_landing_cost
        revenue = (max(estimated_value, 0) / max_value) * REVENUE_SCORE_WEIGHT
        bonus = NEW_MODEL_BONUS if item.sku in new_model_skus else 0

        score = round_half_up(volume + velocity + revenue + bonus)

        if trend == "Increasing":
            velocity_reason = (
                f"Demand is accelerating ({metrics.last_30} units in the last 30 days "
                f"vs {metrics.prev_30} the month before)."
            )
        else:
            velocity_reason = "Demand is holding steady month over month."
        contributors = [
            (volume, f"Sold {metrics.total_90} units in the last 90 days with no stock on hand."),
            (velocity, velocity_reason),
            (revenue, f"Re-ordering covers an estimated ${estimated_value:,.0f} of demand at landing cost."),
            (bonus, "Newly introduced model; staying in stock protects the launch."),
        ]

        recommendations.append(
            BackorderRecommendation(
                sku=item.sku,
                model_name=item.model_name,
                priority=backorder_priority(score),
                priority_score=score,
                reasoning=_reasoning(contributors),
                recent_sales_units=metrics.total_90,
                sales_last_30_days=metrics.last_30,
                sales_previous_30_days=metrics.prev_30,
                sales_trend=trend,
                estimated_backorder_value=estimated_value,
                average_landing_cost=item.average_landing_cost,
                in_stock_qty=item.on_hand_qty,
                affected_customers=metrics.affected_customers,
                first_order_date=first_order_dates.get(item.sku),
            )
        )

    recommendations.sort(key=lambda r: (-r.priority_score, r.sku))
    logger.info(
        "Scored %d backorder candidates (%d high priority)",
        len(recommendations),
        sum(1 for r in recommendations if r.priority == "High"),
    )
    return recommendations
