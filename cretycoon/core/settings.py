"""Application settings with environment variable support.

Uses pydantic-settings for typed configuration validation.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

Difficulty = Literal["easy", "normal", "hard"]

# Starting cash per difficulty tier
STARTING_CASH: dict[str, float] = {
    "easy": 4_500_000.0,
    "normal": 3_000_000.0,
    "hard": 2_200_000.0,
}


class AppSettings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Render logs as JSON lines")

    # Run setup
    seed: Optional[str] = Field(default=None, description="Text seed; random when empty")
    difficulty: Difficulty = Field(default="normal", description="Only affects starting cash")

    # Files
    data_dir: Optional[Path] = Field(default=None, description="Override for the reference data directory")
    run_file: Path = Field(default=Path("runs/current_run.json"), description="Saved run location")

    model_config = {
        "env_prefix": "CRETYCOON_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def starting_cash(self) -> float:
        """Starting cash for the configured difficulty."""
        return STARTING_CASH[self.difficulty]


@lru_cache
def get_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()
