# Inventory reconciliation and recommendation engine
# Reconciles order, sale and serialization records into per-SKU inventory,
# then ranks backorders, promotions and customer sales opportunities.

from .config import CustomerScorePolicy, EngineSettings, get_settings
from .core import (
    EngineError,
    EngineInputError,
    EngineInputs,
    EngineResult,
    InventoryEngine,
    OrderLine,
    SaleLine,
    SerializedUnit,
    WorkerError,
)
from .runner import run_in_worker

__all__ = [
    "CustomerScorePolicy",
    "EngineSettings",
    "get_settings",
    "EngineError",
    "EngineInputError",
    "EngineInputs",
    "EngineResult",
    "InventoryEngine",
    "OrderLine",
    "SaleLine",
    "SerializedUnit",
    "WorkerError",
    "run_in_worker",
]

__version__ = "0.1.0"
