"""
Configuration Management for Pocket Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here, but the engines
never call ``get_settings()``. The service layer reads settings once and
passes explicit values (base currency, default accounts, windows) into
every engine call.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class LedgerSettings(BaseSettings):
    """
    Ledger behaviour.

    Loads configuration from ``LEDGER_*`` environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    base_currency: str = Field(
        default="TWD",
        pattern=r"^[A-Z]{3}$",
        description="Currency all totals are reported in"
    )
    default_currencies: str = Field(
        default="TWD,AUD,USD",
        description="Comma-separated currencies offered before any are stored"
    )

    # Built-in account registry, used while the stored registry is empty
    default_account_id: str = Field(
        default="cash",
        min_length=1,
        description="Id of the built-in default account"
    )
    default_account_name: str = Field(
        default="Cash",
        min_length=1,
        description="Name of the built-in default account"
    )
    default_account_currency: str = Field(
        default="TWD",
        pattern=r"^[A-Z]{3}$",
        description="Currency of the built-in default account"
    )

    # Import
    fallback_account_id: str = Field(
        default="cash",
        min_length=1,
        description="Account id used when an imported row omits a required account"
    )

    # Analytics
    trend_windows: str = Field(
        default="7,30,90,365",
        description="Comma-separated day counts selectable on the dashboard"
    )
    default_window_days: int = Field(
        default=30,
        ge=1,
        description="Window used when none is selected"
    )
    other_category_label: str = Field(
        default="Other",
        min_length=1,
        description="Bucket for income/expenses without a sub-category"
    )

    # Sync key
    min_sync_key_length: int = Field(
        default=6,
        ge=1,
        le=64,
        description="Shortest sync key accepted when switching ledgers"
    )

    @field_validator("trend_windows")
    @classmethod
    def validate_windows(cls, v: str) -> str:
        """Every window must be a positive whole number of days."""
        for item in _split_csv(v):
            if not item.isdigit() or int(item) < 1:
                raise ValueError(f"Invalid trend window: {item!r}")
        return v

    @model_validator(mode="after")
    def default_window_is_selectable(self) -> "LedgerSettings":
        if self.default_window_days not in self.trend_windows_list:
            raise ValueError(
                f"default_window_days ({self.default_window_days}) must be one of "
                f"{self.trend_windows_list}"
            )
        return self

    @property
    def currencies_list(self) -> list[str]:
        """Default currencies as a list, base currency first."""
        codes = [code.upper() for code in _split_csv(self.default_currencies)]
        if self.base_currency not in codes:
            codes.insert(0, self.base_currency)
        return codes

    @property
    def trend_windows_list(self) -> list[int]:
        return sorted({int(item) for item in _split_csv(self.trend_windows)})


class RateServiceSettings(BaseSettings):
    """Public exchange-rate API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_base_url: str = Field(
        default="https://open.er-api.com/v6/latest",
        description="Endpoint returning quotes for a base currency appended to the URL"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout per attempt"
    )
    decimal_places: int = Field(
        default=4,
        ge=0,
        le=10,
        description="Rounding applied to fetched rates"
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
    def rates(self) -> RateServiceSettings:
        return RateServiceSettings()


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

    Returns a dict of {setting_name: is_valid}, plus {name_error: message}
    for each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "rates"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
