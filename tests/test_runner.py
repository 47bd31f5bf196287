"""Running the engine off the event loop."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from inventory_engine.core.engine import EngineInputs, EngineResult
from inventory_engine.core.errors import EngineInputError, WorkerError
from inventory_engine.runner import run_in_worker


@pytest.fixture
def inputs(make_order, make_sale, make_unit, as_of) -> EngineInputs:
    return EngineInputs(
        order_lines=[make_order(quantity=5)],
        sale_lines=[make_sale(serial="S1")],
        serialized_units=[make_unit("S1"), make_unit("S2")],
        as_of=as_of,
    )


def test_worker_result_matches_direct_call(engine, settings, inputs) -> None:
    with ThreadPoolExecutor(max_workers=1) as pool:
        result = asyncio.run(run_in_worker(inputs, settings=settings, executor=pool))

    assert isinstance(result, EngineResult)
    assert result == engine.run(inputs)


def test_worker_in_separate_process(engine, settings, inputs) -> None:
    inventory = asyncio.run(run_in_worker(inputs, request="inventory", settings=settings))
    assert inventory == list(engine.reconcile(inputs).inventory)
    assert inventory[0].on_hand_qty == 1


def test_concurrent_invocations(settings, inputs) -> None:
    async def both():
        with ThreadPoolExecutor(max_workers=2) as pool:
            return await asyncio.gather(
                run_in_worker(inputs, request="promotions", settings=settings, executor=pool),
                run_in_worker(inputs, request="backorders", settings=settings, executor=pool),
            )

    promotions, backorders = asyncio.run(both())
    assert [c.sku for c in promotions] == ["SKU-A"]
    assert backorders == []


def test_engine_errors_pass_through(settings, inputs) -> None:
    broken = EngineInputs(None, inputs.sale_lines, inputs.serialized_units, inputs.as_of)
    with ThreadPoolExecutor(max_workers=1) as pool:
        with pytest.raises(EngineInputError) as excinfo:
            asyncio.run(run_in_worker(broken, request="backorders", settings=settings, executor=pool))
    assert excinfo.value.input_name == "order_lines"


def test_other_failures_are_wrapped(settings, inputs) -> None:
    pool = ThreadPoolExecutor(max_workers=1)
    pool.shutdown()
    with pytest.raises(WorkerError) as excinfo:
        asyncio.run(run_in_worker(inputs, settings=settings, executor=pool))
    assert excinfo.value.request == "all"
    assert "RuntimeError" in excinfo.value.cause
