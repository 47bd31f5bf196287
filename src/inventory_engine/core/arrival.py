"""Arrival index: which (order reference, SKU) lines have physically landed."""

from __future__ import annotations

from typing import Iterable, NamedTuple

from .models import OrderLine


class ArrivalKey(NamedTuple):
    """Composite identity of an order line."""

    order_ref: str
    sku: str


ArrivalIndex = dict[ArrivalKey, bool]


def build_arrival_index(order_lines: Iterable[OrderLine]) -> ArrivalIndex:
    """
    Mark every (order_ref, sku) pair that has at least one arrived line.

    Re-shipments can produce several lines with the same pair; any one of them
    carrying an actual arrival date marks the pair as arrived. Pairs that never
    arrived are simply absent.
    """
    index: ArrivalIndex = {}
    for line in order_lines:
        if not line.order_ref or not line.sku:
            continue
        if line.actual_arrival is not None:
            index[ArrivalKey(line.order_ref, line.sku)] = True
    return index


def has_arrived(index: ArrivalIndex, order_ref: str, sku: str) -> bool:
    """Look up a pair; unknown pairs are treated as not yet arrived."""
    return index.get(ArrivalKey(order_ref, sku), False)
