"""
Data quality screening for engine inputs.

Two layers:
- Record screening: drops rows missing their key fields before any stage
  runs and counts what was dropped (EngineDiagnostics).
- DataQualityChecker: frame-level checks (missing keys, duplicate serials,
  out-of-range quantities) for callers holding pandas DataFrames.

Neither layer raises for bad data; problems are reported, not fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import pandas as pd

from .models import EngineDiagnostics, OrderLine, SaleLine, SerializedUnit

logger = logging.getLogger(__name__)


# --- Record screening ---


def is_valid_order_line(line: OrderLine) -> bool:
    return bool(line.order_ref) and bool(line.sku)


def is_valid_sale_line(line: SaleLine) -> bool:
    return bool(line.sku) and bool(line.serial_number)


def is_valid_serialized_unit(unit: SerializedUnit) -> bool:
    return bool(unit.order_ref) and bool(unit.sku) and bool(unit.full_serialized_string)


@dataclass(frozen=True)
class ScreenedInputs:
    """Inputs with malformed rows removed, plus what was removed."""

    order_lines: tuple[OrderLine, ...]
    sale_lines: tuple[SaleLine, ...]
    serialized_units: tuple[SerializedUnit, ...]
    diagnostics: EngineDiagnostics


def screen_records(
    order_lines: Sequence[OrderLine],
    sale_lines: Sequence[SaleLine],
    serialized_units: Sequence[SerializedUnit],
) -> ScreenedInputs:
    """Drop rows missing key fields and count the exclusions."""
    orders = tuple(line for line in order_lines if is_valid_order_line(line))
    sales = tuple(line for line in sale_lines if is_valid_sale_line(line))
    units = tuple(unit for unit in serialized_units if is_valid_serialized_unit(unit))

    diagnostics = EngineDiagnostics(
        order_lines_received=len(order_lines),
        sale_lines_received=len(sale_lines),
        serialized_units_received=len(serialized_units),
        excluded_order_lines=len(order_lines) - len(orders),
        excluded_sale_lines=len(sale_lines) - len(sales),
        excluded_serialized_units=len(serialized_units) - len(units),
    )
    if diagnostics.excluded_total:
        logger.warning(
            "Excluded malformed rows: %d order lines, %d sale lines, %d serialized units",
            diagnostics.excluded_order_lines,
            diagnostics.excluded_sale_lines,
            diagnostics.excluded_serialized_units,
        )
    return ScreenedInputs(orders, sales, units, diagnostics)


# --- Frame-level checks ---


@dataclass
class DataQualityIssue:
    """A single data quality issue found in an input frame."""

    column: str
    issue_type: str  # "missing", "duplicate", "outlier"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    """Summary report of data quality for one input frame."""

    source_name: str
    total_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        return {
            "source": self.source_name,
            "total_rows": self.total_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


class DataQualityChecker:
    """
    Chainable frame checks.

    Usage:
        report = (
            DataQualityChecker("Sales")
            .check_missing(["sku", "serial_number"])
            .check_duplicates(["serial_number"])
            .check_outliers("quantity", min_val=0)
            .run(sales_df)
        )
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Callable[[pd.DataFrame], list[DataQualityIssue]]] = []

    def add_check(
        self, check_fn: Callable[[pd.DataFrame], list[DataQualityIssue]]
    ) -> "DataQualityChecker":
        """Add a custom check function. Returns self for chaining."""
        self._checks.append(check_fn)
        return self

    def check_missing(self, columns: list[str], severity: str = "critical") -> "DataQualityChecker":
        """Flag empty or null values in key columns; such rows are excluded downstream."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            issues = []
            for col in columns:
                if col not in df.columns:
                    issues.append(
                        DataQualityIssue(
                            column=col,
                            issue_type="missing",
                            severity="critical",
                            count=len(df),
                            percentage=100.0 if len(df) else 0.0,
                            description=f"column '{col}' is absent",
                        )
                    )
                    continue
                values = df[col]
                missing_mask = values.isna() | (values.astype(str).str.strip() == "")
                missing = int(missing_mask.sum())
                if missing > 0:
                    pct = (missing / len(df)) * 100
                    issues.append(
                        DataQualityIssue(
                            column=col,
                            issue_type="missing",
                            severity=severity,
                            count=missing,
                            percentage=pct,
                            description=f"{missing:,} rows without {col} ({pct:.1f}%) will be excluded",
                        )
                    )
            return issues

        self._checks.append(check)
        return self

    def check_duplicates(self, key_columns: list[str], severity: str = "warning") -> "DataQualityChecker":
        """Flag rows sharing the same key columns (e.g. a serial sold twice)."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if any(col not in df.columns for col in key_columns) or len(df) == 0:
                return []
            keyed = df.dropna(subset=key_columns)
            dupes_mask = keyed.duplicated(subset=key_columns, keep=False)
            dupes = int(dupes_mask.sum())
            if dupes > 0:
                samples = keyed.loc[dupes_mask, key_columns[0]].drop_duplicates().head(5).tolist()
                return [
                    DataQualityIssue(
                        column=", ".join(key_columns),
                        issue_type="duplicate",
                        severity=severity,
                        count=dupes,
                        percentage=(dupes / len(df)) * 100,
                        sample_values=samples,
                        description=f"{dupes:,} rows share a key; quantities are summed, not deduplicated",
                    )
                ]
            return []

        self._checks.append(check)
        return self

    def check_outliers(
        self,
        column: str,
        min_val: float | None = None,
        max_val: float | None = None,
        severity: str = "warning",
    ) -> "DataQualityChecker":
        """Add a check for values outside min/max bounds."""

        def check(df: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in df.columns:
                return []

            values = pd.to_numeric(df[column], errors="coerce")
            outlier_mask = pd.Series(False, index=df.index)

            if min_val is not None:
                outlier_mask |= values < min_val
            if max_val is not None:
                outlier_mask |= values > max_val

            outliers = int(outlier_mask.sum())
            if outliers > 0:
                samples = df.loc[outlier_mask, column].head(5).tolist()
                return [
                    DataQualityIssue(
                        column=column,
                        issue_type="outlier",
                        severity=severity,
                        count=outliers,
                        percentage=(outliers / len(df)) * 100,
                        sample_values=samples,
                        description=f"{outliers:,} values outside expected range",
                    )
                ]
            return []

        self._checks.append(check)
        return self

    def run(self, df: pd.DataFrame) -> DataQualityReport:
        """Run all checks and return a quality report."""
        all_issues = []
        for check_fn in self._checks:
            all_issues.extend(check_fn(df))

        return DataQualityReport(
            source_name=self.source_name, total_rows=len(df), issues=all_issues
        )
