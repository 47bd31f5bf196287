"""Promotion scoring for overstocked and pre-launch SKUs."""

from __future__ import annotations

import pytest

from inventory_engine.core.engine import EngineInputs
from inventory_engine.core.promotions import (
    FALLBACK_REASONING,
    aging_stock,
    analyze_promotion_candidates,
    build_reasoning,
    compact_currency,
    stock_pressure,
)


def test_pre_launch_scenario(engine, make_order, make_unit, as_of) -> None:
    inputs = EngineInputs(
        order_lines=[
            make_order("PO-1", "SKU-A", quantity=3, fob=300),
            make_order("PO-2", "SKU-A", quantity=50, fob=300, arrived_days_ago=None),
        ],
        sale_lines=[],
        serialized_units=[make_unit(f"A{n}", "PO-1") for n in range(3)]
        + [make_unit(f"B{n}", "PO-2") for n in range(50)],
        as_of=as_of,
    )
    [candidate] = engine.promotions(inputs)

    assert candidate.priority == "Pre-Launch"
    assert candidate.priority_score == 0
    assert candidate.in_stock_qty == 3
    assert candidate.otw_qty == 50
    assert candidate.otw_value == 15_000
    assert candidate.weeks_of_inventory is None
    assert "50 incoming units" in candidate.reasoning


def test_pre_launch_needs_valuable_shipment(make_item) -> None:
    cheap = make_item(on_hand_qty=0, otw_qty=50, otw_value=5_000)
    assert analyze_promotion_candidates([cheap]) == []


def test_overstocked_aging_item_is_urgent(make_item) -> None:
    item = make_item(
        on_hand_qty=100,
        on_hand_value=50_000,
        weeks_of_inventory=60,
        days_since_last_sale=100,
    )
    [candidate] = analyze_promotion_candidates([item])

    # pressure 35 + aging 25 + value 30
    assert candidate.priority_score == 90
    assert candidate.priority == "Urgent"
    assert candidate.reasoning == (
        "High inventory (60 weeks) presents a major market penetration opportunity. "
        "Additionally: significant capital tied to this stock ($50K) justifies a "
        "strategic marketing push."
    )


def test_never_sold_new_stock(make_item) -> None:
    item = make_item(on_hand_qty=10, on_hand_value=1_000, days_since_last_arrival=45)
    [candidate] = analyze_promotion_candidates([item])

    # pressure 40 + new stock 30 + value 30
    assert candidate.priority_score == 100
    assert candidate.reasoning.startswith("Untapped potential")
    assert "Additionally: new stock needs a launch campaign" in candidate.reasoning


def test_display_order(make_item) -> None:
    items = [
        make_item("SKU-OPT", on_hand_qty=2, on_hand_value=100, weeks_of_inventory=1, days_since_last_sale=2),
        make_item("SKU-PRE", on_hand_qty=1, otw_qty=30, otw_value=20_000, weeks_of_inventory=0),
        make_item(
            "SKU-URG", on_hand_qty=100, on_hand_value=50_000, weeks_of_inventory=60, days_since_last_sale=100
        ),
        make_item("SKU-REC", on_hand_qty=20, on_hand_value=2_000, weeks_of_inventory=30, days_since_last_sale=65),
        make_item("SKU-NONE", on_hand_qty=0),
    ]
    candidates = analyze_promotion_candidates(items)

    assert [(c.sku, c.priority) for c in candidates] == [
        ("SKU-URG", "Urgent"),
        ("SKU-PRE", "Pre-Launch"),
        ("SKU-REC", "Recommended"),
        ("SKU-OPT", "Optional"),
    ]


def test_same_priority_ranked_by_value(make_item) -> None:
    items = [
        make_item("SKU-A", on_hand_qty=5, on_hand_value=100, weeks_of_inventory=1, days_since_last_sale=1),
        make_item("SKU-B", on_hand_qty=5, on_hand_value=900, weeks_of_inventory=1, days_since_last_sale=1),
    ]
    assert [c.sku for c in analyze_promotion_candidates(items)] == ["SKU-B", "SKU-A"]


def test_reasoning_secondary_threshold() -> None:
    assert build_reasoning([(40, "First."), (10, "Second.")]) == "First."
    assert build_reasoning([(40, "First."), (11, "Second.")]) == "First. Additionally: second."
    assert build_reasoning([(0, ""), (0, "")]) == FALLBACK_REASONING


@pytest.mark.parametrize(
    "weeks, score", [(None, 40), (53, 35), (52, 25), (27, 25), (26, 15), (13, 15), (12, 0)]
)
def test_stock_pressure_tiers(weeks, score) -> None:
    assert stock_pressure(weeks)[0] == score


@pytest.mark.parametrize(
    "days_since_sale, days_since_arrival, score",
    [(91, None, 25), (90, None, 15), (61, None, 15), (31, None, 5), (30, None, 0), (None, 31, 30), (None, 30, 0), (None, None, 0)],
)
def test_aging_tiers(days_since_sale, days_since_arrival, score) -> None:
    assert aging_stock(days_since_sale, days_since_arrival)[0] == score


@pytest.mark.parametrize(
    "value, text", [(950, "$950"), (1_200, "$1.2K"), (15_000, "$15K"), (3_400_000, "$3.4M"), (2_000, "$2K")]
)
def test_compact_currency(value, text) -> None:
    assert compact_currency(value) == text
