"""Green credit calculation shared by the self-service and booth-operator paths."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Iterator, Mapping

from ...errors import UnknownWasteType

# kg of CO2 avoided per kg of recycled waste
CO2_FACTORS: Mapping[str, float] = MappingProxyType(
    {
        "plastic": 2.5,
        "organic": 0.5,
        "paper": 1.2,
        "metal": 3.0,
        "glass": 0.8,
        "electronic": 4.0,
        "textile": 1.5,
        "hazardous": 5.0,
    }
)

RANK_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("Diamond", 10_000),
    ("Platinum", 5_000),
    ("Gold", 2_000),
    ("Silver", 500),
    ("Bronze", 0),
)


class RateTable(Mapping[str, float]):
    """Immutable waste type -> points per kilogram mapping."""

    def __init__(self, rates: Mapping[str, float]) -> None:
        if not rates:
            raise ValueError("Rate table must define at least one waste type.")
        normalized: dict[str, float] = {}
        for waste_type, rate in rates.items():
            rate = float(rate)
            if not rate > 0:
                raise ValueError(f"Rate for '{waste_type}' must be positive, got {rate}.")
            normalized[str(waste_type).strip().lower()] = rate
        self._rates = MappingProxyType(normalized)

    def __getitem__(self, waste_type: str) -> float:
        return self._rates[waste_type]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rates)

    def __len__(self) -> int:
        return len(self._rates)

    def __repr__(self) -> str:
        return f"RateTable({dict(self._rates)!r})"

    def rate_for(self, waste_type: object) -> float:
        key = getattr(waste_type, "value", waste_type)
        if not isinstance(key, str) or key not in self._rates:
            raise UnknownWasteType(waste_type)
        return self._rates[key]


@dataclass(frozen=True, slots=True)
class EnvironmentalImpact:
    co2_saved_kg: float
    unit: str = "kg CO2"


def calculate_points(waste_type: object, quantity_kg: float, rates: RateTable) -> int:
    """Return ``floor(quantity_kg * rate)``; fractional credits are never awarded."""

    rate = rates.rate_for(waste_type)
    if quantity_kg is None or not quantity_kg > 0:
        raise ValueError("Quantity must be greater than 0.")
    # decimal product: 8.2 kg at 15 pts/kg is 123, not 122
    return int(math.floor(Decimal(str(quantity_kg)) * Decimal(str(rate))))


def environmental_impact(waste_type: object, quantity_kg: float) -> EnvironmentalImpact:
    key = getattr(waste_type, "value", waste_type)
    if key not in CO2_FACTORS:
        raise UnknownWasteType(waste_type)
    return EnvironmentalImpact(co2_saved_kg=round(quantity_kg * CO2_FACTORS[key], 2))


def rank_for_credits(credits: int) -> str:
    for name, threshold in RANK_THRESHOLDS:
        if credits >= threshold:
            return name
    return RANK_THRESHOLDS[-1][0]
