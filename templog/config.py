from __future__ import annotations

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from a .env file if present (local dev only)
load_dotenv()


class Settings(BaseSettings):
    """Application configuration loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # General
    log_level: str = Field("INFO", description="Level for the 'templog' logger.")

    # Screenshot download
    user_agent: str = Field("Temperature-PDF-Generator/1.0")
    image_max_bytes: int = Field(5 * 1024 * 1024, ge=1, description="Largest screenshot we agree to download.")
    image_timeout_seconds: float = Field(15.0, gt=0)
    image_fast_timeout_seconds: float = Field(8.0, gt=0)
    image_max_retries: int = Field(2, ge=0, description="Retries on 5xx or transport errors.")
    image_retry_delay_seconds: float = Field(1.0, ge=0)

    # Raster backend ("pillow" is the only one shipped)
    raster_backend: str = Field("pillow")

    # PDF export
    pdf_image_max_width: int = Field(200, gt=0)
    pdf_image_max_height: int = Field(100, gt=0)
    pdf_default_mode: str = Field("reliability", description="'reliability' or 'speed'.")
    reliability_delay_seconds: float = Field(1.0, ge=0)
    speed_concurrency: int = Field(4, ge=1)


@lru_cache()
def get_settings() -> Settings:  # pragma: no cover
    """Return a cached Settings instance so it is only parsed once."""

    return Settings()
