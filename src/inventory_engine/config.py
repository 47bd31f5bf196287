"""
Engine configuration.

Loads from environment variables (prefix INVENTORY_ENGINE_) and an optional
.env file. Nested policies use a double underscore, for example
INVENTORY_ENGINE_OPPORTUNITY__VALUE_POINTS=25.

Only policy knobs live here. The backorder and promotion scoring constants are
module-level constants in their scorers: changing them re-ranks results and is
a behavior change, not a configuration tweak.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CustomerScorePolicy(BaseModel):
    """
    How per-pair opportunity scores roll up into one customer score.

        score = mean_score_weight * mean(opportunity scores)
              + count_points * min(opportunity_count, count_cap)
              + value_points * total_value / max total_value across customers

    With the defaults the score stays within 0-100 and rises with both the
    number of matched products (up to the cap) and their total surplus value.
    """

    mean_score_weight: float = Field(default=0.7, ge=0)
    count_points: float = Field(default=2.0, ge=0)
    count_cap: int = Field(default=5, ge=0)
    value_points: float = Field(default=20.0, ge=0)

    @classmethod
    def mean_only(cls) -> "CustomerScorePolicy":
        """Plain average of the per-pair scores, ignoring count and value."""
        return cls(mean_score_weight=1.0, count_points=0.0, count_cap=0, value_points=0.0)


class EngineSettings(BaseSettings):
    """Tunable windows and policies for one engine instance."""

    model_config = SettingsConfigDict(
        env_prefix="INVENTORY_ENGINE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    # ----- Trailing windows -----
    lookback_days: int = Field(default=90, gt=0, description="Sales velocity window.")
    recent_window_days: int = Field(
        default=30, gt=0, description="Width of the last-30 / previous-30 windows."
    )
    new_model_window_days: int = Field(
        default=90,
        gt=0,
        description="A SKU first ordered within this many days counts as a new model.",
    )

    # ----- Opportunities -----
    surplus_min_units: int = Field(
        default=25,
        ge=0,
        description="On hand plus on-the-way units above which a SKU is surplus.",
    )
    opportunity: CustomerScorePolicy = Field(default_factory=CustomerScorePolicy)

    # ----- Worker -----
    worker_max_workers: int = Field(
        default=1, ge=1, description="Processes in the one-shot worker pool."
    )


@lru_cache
def get_settings() -> EngineSettings:
    """Settings read once per process."""
    return EngineSettings()
