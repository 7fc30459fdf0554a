from pathlib import Path
from typing import Optional

from dotenv import dotenv_values
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

from ..core.geometry import is_subdivisible_length
from ..utils.random import normalize_seed

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from TERRAIN_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="TERRAIN_", env_file_encoding="utf-8", extra="ignore")

    # Generation Configuration
    grid_size: int = Field(default=129, description="Height field side length, 2^n + 1")
    roughness: float = Field(default=1.0, ge=0.0, description="Initial random amplitude")
    seed: Optional[str] = Field(default=None, description="Seed for reproducible terrain")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    @field_validator("grid_size")
    @classmethod
    def grid_size_is_subdivisible(cls, value: int) -> int:
        if not is_subdivisible_length(value):
            raise ValueError(f"grid_size must be 2^n + 1 (e.g. 129, 513), got {value}")
        return value

    @field_validator("log_format")
    @classmethod
    def known_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @field_validator("seed")
    @classmethod
    def blank_seed_is_unset(cls, value: Optional[str]) -> Optional[str]:
        return normalize_seed(value)


# Instantiate singleton settings object
settings = Settings()
