"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RATE_TABLE: dict[str, float] = {
    "plastic": 10,
    "paper": 5,
    "metal": 15,
    "glass": 8,
    "organic": 3,
    "electronic": 25,
    "textile": 7,
    "hazardous": 25,
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="GREEN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Green Credits Booth API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    booths_file: Path = Field(
        default=Path("data/booths.xlsx"),
        description="Seed workbook with booth names, areas and coordinates.",
    )
    rate_table: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_TABLE),
        description="Green credits awarded per kilogram, keyed by waste type.",
    )
    max_quantity_kg: float = Field(default=100.0, gt=0.0, description="Per-submission cap for self-service.")
    min_photos: int = Field(default=1, ge=0)
    max_photos: int = Field(default=5, ge=1)
    max_photo_bytes: int = Field(default=5 * 1024 * 1024, ge=1)
    max_notes_length: int = Field(default=500, ge=0)
    recent_collections_limit: int = Field(default=20, ge=1)
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "booths_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            # Try JSON first
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("rate_table", mode="before")
    @classmethod
    def _parse_rate_table(cls, value: Any) -> dict[str, float]:
        """Accept a mapping or a JSON object / ``type=rate`` list from the environment."""
        if isinstance(value, dict):
            return {str(key).strip().lower(): float(rate) for key, rate in value.items()}
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except (json.JSONDecodeError, TypeError):
                parsed = None
            if isinstance(parsed, dict):
                return {str(key).strip().lower(): float(rate) for key, rate in parsed.items()}
            pairs = [item.split("=", 1) for item in value.split(",") if "=" in item]
            if pairs:
                return {key.strip().lower(): float(rate) for key, rate in pairs}
        raise ValueError("rate_table must be a mapping of waste type to points per kg")


settings = Settings()
