"""Booth service helpers."""

from .ranking import ALL_STATUSES, RankedBooth, rank_booths

__all__ = ["ALL_STATUSES", "RankedBooth", "rank_booths"]
