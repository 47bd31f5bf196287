# Core reconciliation and scoring pipeline
# Every stage is a pure function over immutable records

from .models import (
    OrderLine,
    SaleLine,
    SerializedUnit,
    StockStatus,
    InventoryItem,
    BackorderRecommendation,
    PromotionCandidate,
    CustomerProfile,
    SalesOpportunity,
    CustomerSalesOpportunity,
    EngineDiagnostics,
)
from .errors import EngineError, EngineInputError, WorkerError
from .arrival import build_arrival_index, has_arrived
from .aggregation import aggregate_orders, aggregate_sales, partition_serials
from .analysis import compute_sales_metrics, derive_new_model_skus
from .reconciliation import reconcile_inventory, classify_stock_status
from .backorders import analyze_backorder_candidates
from .promotions import analyze_promotion_candidates
from .opportunities import (
    analyze_sales_opportunities,
    build_customer_profiles,
    flatten_opportunities,
)
from .quality import DataQualityChecker, DataQualityReport, screen_records
from .engine import EngineInputs, EngineResult, InventoryEngine, ReconciliationResult

__all__ = [
    "OrderLine",
    "SaleLine",
    "SerializedUnit",
    "StockStatus",
    "InventoryItem",
    "BackorderRecommendation",
    "PromotionCandidate",
    "CustomerProfile",
    "SalesOpportunity",
    "CustomerSalesOpportunity",
    "EngineDiagnostics",
    "EngineError",
    "EngineInputError",
    "WorkerError",
    "build_arrival_index",
    "has_arrived",
    "aggregate_orders",
    "aggregate_sales",
    "partition_serials",
    "compute_sales_metrics",
    "derive_new_model_skus",
    "reconcile_inventory",
    "classify_stock_status",
    "analyze_backorder_candidates",
    "analyze_promotion_candidates",
    "analyze_sales_opportunities",
    "build_customer_profiles",
    "flatten_opportunities",
    "DataQualityChecker",
    "DataQualityReport",
    "screen_records",
    "EngineInputs",
    "EngineResult",
    "InventoryEngine",
    "ReconciliationResult",
]
