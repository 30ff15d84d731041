"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional

DEFAULT_CATALOG_PATH = Path(__file__).parent / "platforms.json"


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # SUPABASE (product store)
    # ===================
    supabase_url: Optional[str] = Field(
        None,
        description="Supabase project URL"
    )
    supabase_key: Optional[str] = Field(
        None,
        description="Supabase anon/public key"
    )
    products_table: str = Field(
        default="products",
        description="Table holding products keyed by code (sku column)"
    )

    # ===================
    # CSV IMPORT
    # ===================
    csv_delimiter: str = Field(
        default=",",
        min_length=1,
        max_length=1,
        description="Default cell delimiter for uploaded files"
    )
    preview_sample_rows: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Data rows included in the file analysis preview"
    )
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        ge=1024,
        description="Largest accepted upload"
    )
    session_ttl_minutes: int = Field(
        default=30,
        ge=1,
        le=24 * 60,
        description="Minutes an idle import session is kept"
    )
    analysis_delay_seconds: float = Field(
        default=0.0,
        ge=0,
        le=10,
        description="Pause before analysis, only used to drive progress display"
    )
    generated_code_prefix: str = Field(
        default="PRD",
        min_length=1,
        description="Prefix for product codes synthesized for blank cells"
    )
    batch_prefix: str = Field(
        default="BATCH",
        min_length=1,
        description="Prefix for batch ids"
    )
    platform_catalog_path: Path = Field(
        default=DEFAULT_CATALOG_PATH,
        description="Versioned platform catalog (JSON)"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        """Check if the product store is configured."""
        return bool(self.supabase_url and self.supabase_key)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
