"""
Configuration Management for MMM

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
External collaborators (Gemini, Google Sheets, local JSON files) are
configured in one place and validated at startup. None of them is required
for the ledger core to work: a missing Gemini key only degrades scanning to
the fallback result, and the default storage backend is local JSON.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageBackend(str, Enum):
    """Supported persistence backends."""
    MEMORY = "memory"
    JSON = "json"
    GOOGLE_SHEETS = "google_sheets"


class GeminiSettings(BaseSettings):
    """Gemini vision model configuration (receipt scanning)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key. Scanning falls back when missing."
    )
    model_name: str = Field(
        default="gemini-3-flash-preview",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Ledger persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: StorageBackend = Field(
        default=StorageBackend.JSON,
        description="Which blob store to persist the ledger to"
    )
    data_dir: Path = Field(
        default=Path(".mmm"),
        description="Directory holding the JSON blobs (json backend)"
    )
    transactions_key: str = Field(
        default="mmm_transactions",
        min_length=1,
        description="Blob key for the transactions ledger"
    )
    groups_key: str = Field(
        default="mmm_groups",
        min_length=1,
        description="Blob key for the groups ledger"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets blob store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    ledger_sheet_name: str = Field(
        default="Ledger",
        description="Name of the key/value sheet holding the ledger blobs"
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

    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for the structured log"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Rows in the dashboard's recent transactions widget"
    )
    max_scan_image_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Largest receipt image sent to the scanner, in MB"
    )

    @property
    def max_scan_image_bytes(self) -> int:
        """Get max scan image size in bytes."""
        return self.max_scan_image_mb * 1024 * 1024

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug_mode else self.log_level


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
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

    sections = {
        "gemini": lambda: settings.gemini,
        "storage": lambda: settings.storage,
        "app": lambda: settings.app,
    }
    if settings.storage.backend == StorageBackend.GOOGLE_SHEETS:
        sections["google_sheets"] = lambda: settings.google_sheets

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # Scanning works without a key, but only ever returns the fallback
    try:
        results["gemini_key_present"] = bool(settings.gemini.api_key)
    except Exception:
        results["gemini_key_present"] = False

    return results
