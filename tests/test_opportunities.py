"""Customer profiles, tiers and surplus sales opportunities."""

from __future__ import annotations

import pytest

from inventory_engine.config import CustomerScorePolicy
from inventory_engine.core.engine import EngineInputs
from inventory_engine.core.opportunities import (
    analyze_sales_opportunities,
    build_customer_profiles,
    customer_opportunity_score,
    flatten_opportunities,
    opportunity_priority,
    purchase_history,
)


def test_tiers_follow_revenue_rank(make_sale, as_of) -> None:
    sales = [make_sale(buyer_id=f"C{n:02d}", unit_price=1_000 - n * 10) for n in range(20)]
    profiles = build_customer_profiles(sales, as_of)

    tiers = [p.tier for p in profiles]
    assert profiles[0].customer_id == "C00"
    assert tiers.count("Platinum") == 1
    assert tiers.count("Gold") == 3
    assert tiers.count("Silver") == 6
    assert tiers.count("Bronze") == 10


def test_profile_summary_and_flags(make_sale, as_of) -> None:
    sales = [
        make_sale(buyer_id="C1", days_ago=10, quantity=2, unit_price=100, invoice_number="INV-1"),
        make_sale(buyer_id="C1", days_ago=40, quantity=1, unit_price=100, invoice_number="INV-1"),
        make_sale(buyer_id="C2", days_ago=200),
        make_sale(buyer_id="C3", days_ago=None),
    ]
    profiles = {p.customer_id: p for p in build_customer_profiles(sales, as_of)}

    c1 = profiles["C1"]
    assert c1.total_units == 3
    assert c1.total_revenue == 300
    assert c1.invoice_count == 1
    assert c1.days_since_last_purchase == 10
    assert c1.is_new
    assert not c1.is_at_risk

    assert not profiles["C2"].is_new
    assert profiles["C2"].is_at_risk
    assert profiles["C3"].is_at_risk
    assert profiles["C3"].last_purchase_date is None


def _surplus_scenario(make_item, make_sale, as_of):
    item = make_item("SKU-A", on_hand_qty=45, average_landing_cost=100)
    sales = [make_sale("SKU-A", buyer_id="C1", quantity=9, days_ago=0)]
    profiles = build_customer_profiles(sales, as_of)
    return item, sales, profiles


def test_pair_score_components(make_item, make_sale, as_of) -> None:
    item, sales, profiles = _surplus_scenario(make_item, make_sale, as_of)
    [customer] = analyze_sales_opportunities([item], sales, profiles, as_of)
    [pair] = customer.opportunities

    # tier 30 + stock 1 + recency 35 + past units 10
    assert pair.priority_score == 76
    assert pair.priority == "High"
    assert pair.customer_tier == "Platinum"
    assert pair.customer_past_units == 9
    assert pair.surplus_stock_value == pytest.approx(4_500)
    assert pair.reasoning == "Last bought this model 0 days ago. Platinum customer."


def test_customer_score_uses_policy(make_item, make_sale, as_of) -> None:
    item, sales, profiles = _surplus_scenario(make_item, make_sale, as_of)

    [default] = analyze_sales_opportunities([item], sales, profiles, as_of)
    [mean_only] = analyze_sales_opportunities(
        [item], sales, profiles, as_of, policy=CustomerScorePolicy.mean_only()
    )

    # 0.7 * 76 + 2 * 1 + 20 * 1
    assert default.priority_score == 75
    assert default.priority == "High"
    assert mean_only.priority_score == 76
    assert default.opportunity_count == 1
    assert default.total_opportunity_value == pytest.approx(4_500)


def test_surplus_threshold_is_exclusive(make_item, make_sale, as_of) -> None:
    sales = [make_sale("SKU-A", buyer_id="C1")]
    profiles = build_customer_profiles(sales, as_of)
    at_threshold = make_item("SKU-A", on_hand_qty=20, otw_qty=5)
    above = make_item("SKU-A", on_hand_qty=20, otw_qty=6)

    assert analyze_sales_opportunities([at_threshold], sales, profiles, as_of) == []
    assert len(analyze_sales_opportunities([above], sales, profiles, as_of)) == 1


def test_only_past_buyers_are_matched(make_item, make_sale, as_of) -> None:
    sales = [make_sale("SKU-A", buyer_id="C1"), make_sale("SKU-B", buyer_id="C2")]
    profiles = build_customer_profiles(sales, as_of)
    results = analyze_sales_opportunities(
        [make_item("SKU-A", on_hand_qty=40)], sales, profiles, as_of
    )
    assert [r.customer_id for r in results] == ["C1"]


def test_purchase_history_sums_units_per_customer_and_sku(make_sale, as_of) -> None:
    sales = [
        make_sale("SKU-A", buyer_id="C1", quantity=2, days_ago=40),
        make_sale("SKU-A", buyer_id="C1", quantity=3, days_ago=10),
        make_sale("SKU-B", buyer_id="C1", days_ago=None),
        make_sale("SKU-A", buyer_id="", days_ago=1),
    ]
    history = purchase_history(sales)

    assert set(history) == {("C1", "SKU-A"), ("C1", "SKU-B")}
    assert history["C1", "SKU-A"].units == 5
    assert (as_of - history["C1", "SKU-A"].last_purchase_date).days == 10
    assert history["C1", "SKU-B"].last_purchase_date is None
    assert purchase_history([]) == {}


def test_flatten_orders_pairs_by_score(make_item, make_sale, as_of) -> None:
    sales = [
        make_sale("SKU-A", buyer_id="C1", days_ago=1),
        make_sale("SKU-B", buyer_id="C1", days_ago=80),
        make_sale("SKU-A", buyer_id="C2", days_ago=50),
    ]
    profiles = build_customer_profiles(sales, as_of)
    items = [make_item("SKU-A", on_hand_qty=30), make_item("SKU-B", on_hand_qty=30)]
    customers = analyze_sales_opportunities(items, sales, profiles, as_of)
    pairs = flatten_opportunities(customers)

    assert len(pairs) == 3
    scores = [p.priority_score for p in pairs]
    assert scores == sorted(scores, reverse=True)
    assert [op.sku for op in customers[0].opportunities] == ["SKU-A", "SKU-B"]


def test_engine_opportunities_include_on_the_way(engine, make_order, make_sale, make_unit, as_of) -> None:
    inputs = EngineInputs(
        order_lines=[make_order("PO-1", quantity=30, arrived_days_ago=None)],
        sale_lines=[make_sale("SKU-A", buyer_id="C1", days_ago=15)],
        serialized_units=[make_unit(f"S{n}", "PO-1") for n in range(30)],
        as_of=as_of,
    )
    [customer] = engine.opportunities(inputs)
    assert customer.opportunities[0].otw_qty == 30
    assert customer.opportunities[0].in_stock_qty == 0


def test_customer_score_with_no_opportunities() -> None:
    assert customer_opportunity_score([], 0, 0, CustomerScorePolicy()) == 0


@pytest.mark.parametrize("score, expected", [(75, "High"), (74, "Medium"), (50, "Medium"), (49, "Low")])
def test_opportunity_priority_bands(score, expected) -> None:
    assert opportunity_priority(score) == expected
