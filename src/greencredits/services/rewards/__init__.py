"""Reward calculation helpers."""

import functools

from .calculator import (
    CO2_FACTORS,
    EnvironmentalImpact,
    RateTable,
    calculate_points,
    environmental_impact,
    rank_for_credits,
)
from ...config import settings


@functools.lru_cache(maxsize=1)
def default_rate_table() -> RateTable:
    """Process-wide rate table, built once from settings."""
    return RateTable(settings.rate_table)


__all__ = [
    "CO2_FACTORS",
    "EnvironmentalImpact",
    "RateTable",
    "calculate_points",
    "default_rate_table",
    "environmental_impact",
    "rank_for_credits",
]
