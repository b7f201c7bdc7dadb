"""
Configuration Management for Budget Tracker

Typed settings read from environment variables and an optional .env file.

DESIGN DECISION: All configuration is centralized here.
The ledger core itself takes its collaborators by injection; settings are
only read by the component factory and the Firestore client.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirestoreSettings(BaseSettings):
    """Firestore document store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIRESTORE_",
        extra="ignore"
    )

    project_id: Optional[str] = Field(
        default=None,
        description="Firebase/GCP project id (falls back to ADC project)"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON; ADC is used when unset"
    )
    emulator_host: Optional[str] = Field(
        default=None,
        description="host:port of a Firestore emulator, e.g. 127.0.0.1:8080"
    )

    # Collection layout (matches the data written by the web client)
    transactions_collection: str = Field(
        default="transactions",
        description="Collection holding transaction documents"
    )
    categories_collection: str = Field(
        default="categories",
        description="Collection holding category documents"
    )
    owner_field: str = Field(
        default="userId",
        description="Document field holding the owning user's id"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """A missing key file only warns; it may be mounted after startup."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firestore credentials file not found at {v}. "
                "Make sure it exists before connecting."
            )
        return v


class LedgerSettings(BaseSettings):
    """Ledger core behaviour and logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: str = Field(
        default="firestore",
        pattern="^(firestore|memory)$",
        description="Document store backend to wire up"
    )
    recent_transactions_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many transactions the dashboard's recent list shows"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum log level"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON (False gives console output)"
    )

    @field_validator('log_level', mode='before')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return str(v).strip().upper()


class Settings(BaseSettings):
    """Root settings; each section is read from the environment on access."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily to allow partial configuration

    @property
    def firestore(self) -> FirestoreSettings:
        return FirestoreSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


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

    Returns a dict of {setting_name: is_valid}, plus an
    ``<name>_error`` entry for each section that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("firestore", "ledger"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
