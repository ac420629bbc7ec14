"""Centralized configuration management using Pydantic Settings.

This module provides a single source of truth for all configuration values
used by the rating engine and the shipment lifecycle.
All settings can be overridden via environment variables.
"""

from datetime import date
from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cargo_core.config.env_loader import load_environment_variables


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables.
    For example, VAT_APPLY=true VAT_PCT=19 turns on VAT for every quote.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ========== Rating Configuration ==========
    default_currency: str = Field(
        default="EUR",
        description="Currency used when a rate card does not carry one"
    )
    volumetric_divisor: float = Field(
        default=5000.0,
        gt=0,
        description="Divisor turning cm³ into volumetric kg"
    )
    rounding_step_kg: float = Field(
        default=0.5,
        ge=0,
        description="Billable weight is rounded up to a multiple of this step (0 disables)"
    )
    vat_apply: bool = Field(
        default=False,
        description="Whether VAT is added on top of the subtotal"
    )
    vat_pct: float = Field(
        default=0.0,
        ge=0,
        description="VAT percentage (19 = 19%)"
    )
    money_rounding_decimals: int = Field(
        default=2,
        ge=0,
        description="Decimals kept on every money field"
    )

    # ========== ETA Configuration ==========
    ship_cutoff_hour: Optional[int] = Field(
        default=16,
        ge=0,
        le=23,
        description="Local hour after which a booking starts counting from the next day"
    )
    local_timezone: str = Field(
        default="UTC",
        description="IANA timezone used for cutoff hour, weekends and holidays"
    )
    local_holidays: str = Field(
        default="",
        description="Comma-separated ISO dates (YYYY-MM-DD) excluded from business days"
    )
    weekend_days: List[int] = Field(
        default=[5, 6],
        description="Weekdays treated as weekend (Monday=0 ... Sunday=6)"
    )
    business_days_only: bool = Field(
        default=True,
        description="Count transit days as business days"
    )

    # ========== Lifecycle Configuration ==========
    idempotency_window_seconds: int = Field(
        default=120,
        ge=0,
        description="Duplicate scans (same status and role) within this window are dropped"
    )
    scan_note_max_length: int = Field(
        default=500,
        description="Maximum length of a scan note"
    )
    default_scan_location: str = Field(
        default="Unknown",
        description="City recorded when a scan arrives without a location"
    )
    admin_roles: List[str] = Field(
        default=["admin"],
        description="Actor roles allowed to override transitions and edit history"
    )

    # ========== Booking Configuration ==========
    default_service_level: str = Field(
        default="standard",
        description="Service level used for bookings that do not request one"
    )
    shipment_ref_prefix: str = Field(
        default="SHP",
        description="Prefix of generated shipment reference codes"
    )
    reference_max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries with a fresh reference when a duplicate is detected"
    )

    # ========== File Paths Configuration ==========
    rate_cards_json: Path = Field(
        default=Path("data/rate_cards.json"),
        description="Path to the rate card JSON file"
    )
    zone_table_json: Optional[Path] = Field(
        default=None,
        description="Optional JSON file replacing the built-in zone geography"
    )

    def get_local_holidays(self) -> List[date]:
        """Parse the configured holiday list.

        Returns:
            List of holiday dates, empty when none are configured
        """
        return [
            date.fromisoformat(item.strip())
            for item in self.local_holidays.split(",")
            if item.strip()
        ]

    def get_rate_cards_path(self, project_dir: Path) -> Path:
        """Get absolute path to the rate card JSON file.

        Args:
            project_dir: Project root directory

        Returns:
            Absolute path to rate card JSON file
        """
        if self.rate_cards_json.is_absolute():
            return self.rate_cards_json
        return project_dir / self.rate_cards_json

    def get_zone_table_path(self, project_dir: Path) -> Optional[Path]:
        """Get absolute path to the zone table JSON file, if one is configured."""
        if self.zone_table_json is None:
            return None
        if self.zone_table_json.is_absolute():
            return self.zone_table_json
        return project_dir / self.zone_table_json


# Global settings instance, created lazily on first access
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Creates and caches a Settings instance on first call.
    Subsequent calls return the cached instance.

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        load_environment_variables()
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next access re-reads the environment."""
    global _settings
    _settings = None
