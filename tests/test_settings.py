"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from budget_tracker.config import (
    FirestoreSettings,
    LedgerSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestLedgerSettings:
    def test_defaults(self, monkeypatch):
        for name in ("LEDGER_BACKEND", "LEDGER_LOG_LEVEL", "LEDGER_RECENT_TRANSACTIONS_LIMIT", "LEDGER_JSON_LOGS"):
            monkeypatch.delenv(name, raising=False)
        settings = LedgerSettings(_env_file=None)
        assert settings.backend == "firestore"
        assert settings.recent_transactions_limit == 10
        assert settings.log_level == "INFO"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BACKEND", "memory")
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")
        monkeypatch.setenv("LEDGER_JSON_LOGS", "false")

        settings = LedgerSettings(_env_file=None)

        assert settings.backend == "memory"
        assert settings.log_level == "DEBUG"
        assert settings.json_logs is False

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("LEDGER_BACKEND", "sqlite")
        with pytest.raises(ValidationError):
            LedgerSettings(_env_file=None)


class TestFirestoreSettings:
    def test_collection_defaults_match_stored_layout(self, monkeypatch):
        monkeypatch.delenv("FIRESTORE_OWNER_FIELD", raising=False)
        settings = FirestoreSettings()
        assert settings.transactions_collection == "transactions"
        assert settings.categories_collection == "categories"
        assert settings.owner_field == "userId"

    def test_missing_credentials_file_warns(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FIRESTORE_CREDENTIALS_PATH", str(tmp_path / "missing.json"))
        with pytest.warns(UserWarning):
            FirestoreSettings()


class TestSettingsRoot:
    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings_reports_failures(self, monkeypatch):
        monkeypatch.setenv("LEDGER_RECENT_TRANSACTIONS_LIMIT", "0")
        results = validate_all_settings()
        assert results["firestore"] is True
        assert results["ledger"] is False
        assert "ledger_error" in results
