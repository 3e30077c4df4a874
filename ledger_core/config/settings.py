"""
Configuration Management for Ledger Core

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds, the base currency and the default category set are policy,
not code, so they are read once and validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger policy: base currency, categories and alert thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_currency: str = Field(
        default="PHP",
        min_length=3,
        max_length=3,
        description="ISO code every amount is normalized to"
    )
    default_categories: str = Field(
        default="Food,Bills,Transport,Shopping,Other",
        description="Comma-separated list of categories a new ledger starts with"
    )

    # Alert thresholds (percent of limit)
    warning_percent: float = Field(
        default=80.0,
        ge=0.0,
        description="Spending at or above this percentage raises a warning"
    )
    exceeded_percent: float = Field(
        default=100.0,
        gt=0.0,
        description="Spending at or above this percentage is over budget"
    )

    text_max_length: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum length of user-entered descriptions and names"
    )
    store_key: str = Field(
        default="budgetData",
        min_length=1,
        description="Key the ledger state is stored under"
    )

    @field_validator('base_currency')
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'LedgerSettings':
        if self.warning_percent > self.exceeded_percent:
            raise ValueError("warning_percent cannot be above exceeded_percent")
        return self

    @property
    def categories_list(self) -> list[str]:
        """Get default categories as a list."""
        return [c.strip() for c in self.default_categories.split(",") if c.strip()]


class StoreSettings(BaseSettings):
    """File store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORE_",
        extra="ignore"
    )

    directory: str = Field(
        default=".ledger",
        description="Directory the JSON file store writes into"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level written to the structured log"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def store(self) -> StoreSettings:
        return StoreSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "store", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
