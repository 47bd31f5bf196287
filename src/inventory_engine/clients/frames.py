"""
DataFrame adapter for the engine.

Callers that already hold parsed exports as pandas DataFrames (one column per
record field, dates already parsed) can turn them into engine records here,
get a data-quality report per frame, and convert engine outputs back into
DataFrames for display or export.

Column names are the record field names (see core.models). Optional columns
may be absent; key columns missing from a frame are reported as critical
quality issues and the affected rows are later excluded by the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, TypeVar

import pandas as pd
from pydantic import BaseModel

from ..core.engine import EngineInputs
from ..core.models import OrderLine, SaleLine, SerializedUnit
from ..core.quality import DataQualityChecker, DataQualityReport

logger = logging.getLogger(__name__)

T = TypeVar("T", OrderLine, SaleLine, SerializedUnit)

# Field kinds used to coerce raw cell values
DATE_FIELDS = {
    "ship_date",
    "receipt_date",
    "eta",
    "actual_arrival",
    "issue_date",
    "invoice_date",
}
DATETIME_FIELDS = {"recorded_at"}
INT_FIELDS = {"quantity"}
FLOAT_FIELDS = {"fob_unit_price", "landing_unit_price", "unit_price", "total_revenue"}

# Key columns per frame; rows missing any of them are excluded by the engine
ORDER_KEY_COLUMNS = ["order_ref", "sku"]
SALE_KEY_COLUMNS = ["sku", "serial_number"]
SERIAL_KEY_COLUMNS = ["order_ref", "sku", "full_serialized_string"]


@dataclass
class LoadedFrames:
    """Engine-ready records plus one quality report per source frame."""

    order_lines: list[OrderLine]
    sale_lines: list[SaleLine]
    serialized_units: list[SerializedUnit]
    quality_reports: dict[str, DataQualityReport]

    def to_inputs(
        self, as_of: date | datetime, new_model_skus: Iterable[str] | None = None
    ) -> EngineInputs:
        return EngineInputs(
            order_lines=self.order_lines,
            sale_lines=self.sale_lines,
            serialized_units=self.serialized_units,
            as_of=as_of,
            new_model_skus=frozenset(new_model_skus) if new_model_skus is not None else None,
        )


def _coerce(name: str, value: Any) -> Any:
    """Convert one pandas cell into the Python value a record field expects."""
    if value is None or (not isinstance(value, (list, tuple, set)) and pd.isna(value)):
        if name in DATE_FIELDS or name in DATETIME_FIELDS:
            return None
        if name in INT_FIELDS:
            return 0
        if name in FLOAT_FIELDS:
            return 0.0
        return ""

    if name in DATE_FIELDS:
        return pd.Timestamp(value).date()
    if name in DATETIME_FIELDS:
        return pd.Timestamp(value).to_pydatetime()
    if name in INT_FIELDS:
        return int(value)
    if name in FLOAT_FIELDS:
        return float(value)
    return str(value).strip()


def records_from_frame(df: pd.DataFrame, record_type: type[T]) -> list[T]:
    """
    Build one record per row. Columns that are not record fields are ignored;
    record fields without a column take their zero value.
    """
    names = [f.name for f in fields(record_type)]
    present = [name for name in names if name in df.columns]
    missing = [name for name in names if name not in df.columns]
    if missing:
        logger.debug("%s frame has no columns for %s", record_type.__name__, missing)

    records = []
    for row in df[present].itertuples(index=False, name=None):
        values = {name: _coerce(name, value) for name, value in zip(present, row)}
        for name in missing:
            values[name] = _coerce(name, None)
        records.append(record_type(**values))
    return records


def check_order_lines(df: pd.DataFrame) -> DataQualityReport:
    return (
        DataQualityChecker("Order Lines")
        .check_missing(ORDER_KEY_COLUMNS)
        .check_outliers("quantity", min_val=0)
        .check_outliers("fob_unit_price", min_val=0)
        .check_outliers("landing_unit_price", min_val=0)
        .run(df)
    )


def check_sale_lines(df: pd.DataFrame) -> DataQualityReport:
    return (
        DataQualityChecker("Sale Lines")
        .check_missing(SALE_KEY_COLUMNS)
        .check_duplicates(["serial_number"])
        .check_outliers("quantity", min_val=0)
        .run(df)
    )


def check_serialized_units(df: pd.DataFrame) -> DataQualityReport:
    return (
        DataQualityChecker("Serialized Units")
        .check_missing(SERIAL_KEY_COLUMNS)
        .check_duplicates(["full_serialized_string"])
        .run(df)
    )


def load_frames(
    orders_df: pd.DataFrame,
    sales_df: pd.DataFrame,
    serials_df: pd.DataFrame,
) -> LoadedFrames:
    """Convert the three source frames and run their quality checks."""
    quality_reports = {
        "orders": check_order_lines(orders_df),
        "sales": check_sale_lines(sales_df),
        "serials": check_serialized_units(serials_df),
    }
    for report in quality_reports.values():
        summary = report.summary()
        logger.info("Quality summary: %s", summary)
        if report.has_critical_issues:
            logger.warning(
                "%s: %d critical quality issues (%s)",
                report.source_name,
                summary["critical"],
                ", ".join(f"{i.column}: {i.issue_type}" for i in report.critical_issues),
            )
        elif report.warning_issues:
            logger.warning(
                "%s: %d quality warnings (%s)",
                report.source_name,
                summary["warnings"],
                ", ".join(f"{i.column}: {i.issue_type}" for i in report.warning_issues),
            )

    return LoadedFrames(
        order_lines=records_from_frame(orders_df, OrderLine),
        sale_lines=records_from_frame(sales_df, SaleLine),
        serialized_units=records_from_frame(serials_df, SerializedUnit),
        quality_reports=quality_reports,
    )


def to_frame(records: Iterable[BaseModel]) -> pd.DataFrame:
    """
    Flatten output records into a DataFrame, one row per record.

    Enum values become their string value and nested collections (a
    customer's opportunities) are left out; flatten them separately.
    """
    rows = []
    for record in records:
        row = {}
        for key, value in record.model_dump().items():
            if isinstance(value, (list, tuple, dict)):
                continue
            row[key] = value.value if isinstance(value, Enum) else value
        rows.append(row)
    return pd.DataFrame(rows)
