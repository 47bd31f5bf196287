"""Shared record builders for engine tests.

Builders default every field a test does not care about, so each test only
spells out the quantities and dates that drive the behavior under test.
"""

from __future__ import annotations

import os
from datetime import date, timedelta

import pytest

from inventory_engine.config import EngineSettings
from inventory_engine.core.engine import InventoryEngine
from inventory_engine.core.models import (
    InventoryItem,
    OrderLine,
    SaleLine,
    SerializedUnit,
    StockStatus,
)

AS_OF = date(2025, 6, 30)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def settings(monkeypatch, tmp_path) -> EngineSettings:
    """Default settings, isolated from the caller's environment and .env."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.upper().startswith("INVENTORY_ENGINE_"):
            monkeypatch.delenv(name, raising=False)
    return EngineSettings()


@pytest.fixture
def engine(settings) -> InventoryEngine:
    return InventoryEngine(settings)


@pytest.fixture
def make_order():
    def build(
        order_ref: str = "PO-1",
        sku: str = "SKU-A",
        quantity: int = 10,
        fob: float = 100.0,
        landing: float = 120.0,
        arrived_days_ago: int | None = 30,
        issue_days_ago: int | None = None,
        **overrides,
    ) -> OrderLine:
        return OrderLine(
            order_ref=order_ref,
            sku=sku,
            quantity=quantity,
            fob_unit_price=fob,
            landing_unit_price=landing,
            actual_arrival=(
                AS_OF - timedelta(days=arrived_days_ago) if arrived_days_ago is not None else None
            ),
            issue_date=AS_OF - timedelta(days=issue_days_ago) if issue_days_ago is not None else None,
            **overrides,
        )

    return build


@pytest.fixture
def make_sale():
    counter = iter(range(1, 100_000))

    def build(
        sku: str = "SKU-A",
        serial: str | None = None,
        days_ago: int | None = 5,
        quantity: int = 1,
        buyer_id: str = "C1",
        buyer_name: str | None = None,
        unit_price: float = 200.0,
        **overrides,
    ) -> SaleLine:
        n = next(counter)
        return SaleLine(
            invoice_date=AS_OF - timedelta(days=days_ago) if days_ago is not None else None,
            quantity=quantity,
            buyer_id=buyer_id,
            buyer_name=buyer_name or f"Buyer {buyer_id}",
            invoice_number=overrides.pop("invoice_number", f"INV-{n}"),
            serial_number=serial if serial is not None else f"SOLD-{n}",
            sku=sku,
            unit_price=unit_price,
            total_revenue=unit_price * quantity,
            **overrides,
        )

    return build


@pytest.fixture
def make_unit():
    def build(serial: str, order_ref: str = "PO-1", sku: str = "SKU-A") -> SerializedUnit:
        return SerializedUnit(
            order_ref=order_ref,
            sku=sku,
            serial_number=serial,
            full_serialized_string=serial,
        )

    return build


@pytest.fixture
def make_item():
    """Reconciled InventoryItem with neutral defaults, for scorer tests."""

    def build(sku: str = "SKU-A", **overrides) -> InventoryItem:
        values = dict(
            sku=sku,
            model_name=f"Model {sku}",
            total_shipped_qty=0,
            total_arrived_qty=0,
            total_sold_qty=0,
            total_serialized_qty=0,
            total_arrived_serialized_qty=0,
            total_otw_serialized_qty=0,
            on_hand_qty=0,
            unaccounted_stock_qty=0,
            otw_qty=0,
            total_landing_value=0.0,
            total_fob_value=0.0,
            average_landing_cost=0.0,
            average_fob_cost=0.0,
            on_hand_value=0.0,
            otw_value=0.0,
            weekly_run_rate=0.0,
            weeks_of_inventory=None,
            stock_status=StockStatus.OUT_OF_STOCK,
        )
        values.update(overrides)
        return InventoryItem(**values)

    return build
