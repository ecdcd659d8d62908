"""Route group exports."""

from . import admin, booths, health, submissions, waste_types

__all__ = ["admin", "booths", "health", "submissions", "waste_types"]
