"""
Configuration Management for the Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Business thresholds (series limits, alert levels) live next to the
storage settings so a deployment can be inspected in one place.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Business rules and sanity thresholds for ledger entries."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_user_id: str = Field(
        default="local",
        min_length=1,
        description="User id used when the host does not supply one"
    )
    max_entry_amount: Decimal = Field(
        default=Decimal("1000000.00"),
        gt=0,
        description="Amounts above this are flagged for review (warning only)"
    )
    max_series_count: int = Field(
        default=120,
        ge=1,
        le=1000,
        description="Maximum number of occurrences in one series"
    )
    future_date_tolerance_days: int = Field(
        default=366,
        ge=0,
        description="Single entries dated further ahead than this get a warning"
    )
    goal_alert_threshold: Decimal = Field(
        default=Decimal("0.85"),
        gt=0,
        le=1,
        description="Fraction of an expense goal that triggers an alert"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # One worksheet per collection
    entries_sheet_name: str = Field(default="Entries")
    cards_sheet_name: str = Field(default="Cards")
    accounts_sheet_name: str = Field(default="Accounts")
    monthly_goals_sheet_name: str = Field(default="MonthlyGoals")
    savings_goals_sheet_name: str = Field(default="SavingsGoals")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which document store backs the ledger"
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

    # Note: sections are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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


def validate_all_settings() -> dict[str, Union[bool, str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {section_name: is_valid} plus "<section>_error"
    messages for the sections that failed. Useful for startup checks.
    """
    results: dict[str, Union[bool, str]] = {}
    settings = get_settings()

    for section in ("ledger", "google_sheets", "app"):
        try:
            getattr(settings, section)
            results[section] = True
        except Exception as e:
            results[section] = False
            results[f"{section}_error"] = str(e)

    return results
