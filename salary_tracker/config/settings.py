"""
Configuration Management for Salary Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here so the external dependencies
(Gemini, the local data directory) are visible in one place and
validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    extraction_model_name: str = Field(
        default="gemini-1.5-flash",
        description="Model used to read pay stubs"
    )
    insight_model_name: str = Field(
        default="gemini-1.5-pro",
        description="Model used for narrative career insights"
    )
    max_tokens: int = Field(
        default=2048,
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
    insight_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Temperature for free-form insight text"
    )


class StorageSettings(BaseSettings):
    """Local blob storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".salary_tracker",
        description="Directory holding the persisted blobs"
    )
    entries_key: str = Field(
        default="financial_track_data_v2",
        min_length=1,
        description="Blob key holding the JSON array of entries"
    )
    audit_log_name: str = Field(
        default="audit_log.jsonl",
        description="File name of the append-only audit log"
    )
    persist_audit_log: bool = Field(
        default=True,
        description="Write audit events to the data directory as well as the console"
    )

    @field_validator('entries_key')
    @classmethod
    def validate_entries_key(cls, v: str) -> str:
        """The key becomes a file name, so it cannot contain path separators."""
        if "/" in v or "\\" in v:
            raise ValueError(f"Storage key must not contain path separators: {v}")
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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Document upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_document_types: str = Field(
        default="application/pdf,image/jpeg,image/png,image/webp,image/heic",
        description="Comma-separated list of MIME types accepted for extraction"
    )

    # Analytics
    default_currency: str = Field(
        default="USD",
        pattern="^[A-Z]{3}$",
        description="Currency used for display when an entry's code is invalid"
    )
    insight_history_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many recent entries are summarized for insights"
    )

    @property
    def supported_types_list(self) -> list[str]:
        """Get supported MIME types as a list."""
        return [
            mime.strip().lower()
            for mime in self.supported_document_types.split(",")
            if mime.strip()
        ]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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
    # (storage and analytics work without a Gemini key).

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}, with an
    additional "<name>_error" entry for each failure.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
