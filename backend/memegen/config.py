"""
Configuration module for the Meme Generator Backend.

This module handles all environment variable loading and configuration settings.
The external model command, model names, output locations and font-fit bounds
are configured here.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every value can be overridden via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ==========================================================================
    # APPLICATION SETTINGS
    # ==========================================================================

    APP_NAME: str = "Meme Generator Backend"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # ==========================================================================
    # EXTERNAL MODEL PROCESS SETTINGS
    # ==========================================================================

    # Command used to launch the model CLI. Split with shlex, so extra
    # leading arguments are allowed (e.g. "python stub_model.py").
    OLLAMA_COMMAND: str = "ollama"

    # Model used for the image generation invocation
    IMAGE_MODEL: str = "x/flux2-klein"

    # Model used for the caption (JSON) invocation
    TEXT_MODEL: str = "gemma3:270m"

    # Seconds before a model process is killed. 0 disables the timeout.
    MODEL_TIMEOUT: float = 600

    # Run every invocation in its own temporary working directory
    ISOLATE_WORKDIR: bool = True

    # Parent directory for the per-invocation working directories.
    # None uses the system temp directory.
    WORK_DIR: Optional[str] = None

    # ==========================================================================
    # STORAGE SETTINGS
    # ==========================================================================

    # Managed output directory that finished images are moved into and served from
    OUTPUT_DIR: str = "generated"

    DB_PATH: str = "meme_generator.db"

    HISTORY_LIMIT: int = 10

    # ==========================================================================
    # CAPTION RENDERING SETTINGS
    # ==========================================================================

    # On-disk font tried first; Pillow's embedded face is used when it fails
    FONT_PATH: str = "assets/fonts/Impact.ttf"

    # Bounds for the height-derived upper font size
    MIN_FONT_BOUND: float = 20
    MAX_FONT_BOUND: float = 120

    # ==========================================================================
    # CORS SETTINGS
    # ==========================================================================

    # Comma separated list, e.g. "https://your-frontend.com,http://localhost:3000"
    CORS_ORIGINS: str = ""

    @field_validator("MODEL_TIMEOUT")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("MODEL_TIMEOUT cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_font_bounds(self) -> "Settings":
        """The upper bound must leave room for the 16pt legibility floor."""
        if self.MAX_FONT_BOUND < 16:
            raise ValueError("MAX_FONT_BOUND must be at least 16")
        if self.MIN_FONT_BOUND > self.MAX_FONT_BOUND:
            raise ValueError("MIN_FONT_BOUND cannot exceed MAX_FONT_BOUND")
        return self

    @property
    def model_timeout_seconds(self) -> Optional[float]:
        """Timeout suitable for subprocess.run (None means wait forever)."""
        return self.MODEL_TIMEOUT or None

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS string into a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: The application settings instance
    """
    return Settings()
