"""Tests for settings loaded from the environment."""

import pytest
from pydantic import ValidationError

from salary_tracker.config import (
    AppSettings,
    GeminiSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("GEMINI_API_KEY", "STORAGE_DATA_DIR", "STORAGE_ENTRIES_KEY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestStorageSettings:

    def test_defaults(self):
        settings = StorageSettings()
        assert settings.entries_key == "financial_track_data_v2"
        assert settings.audit_log_name == "audit_log.jsonl"

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "ledger"))
        assert StorageSettings().data_dir == tmp_path / "ledger"

    def test_key_cannot_be_a_path(self):
        with pytest.raises(ValidationError):
            StorageSettings(entries_key="../escape")


class TestAppSettings:

    def test_supported_types_list(self):
        settings = AppSettings(supported_document_types="application/pdf, IMAGE/PNG,")
        assert settings.supported_types_list == ["application/pdf", "image/png"]

    def test_max_upload_size_bytes(self):
        assert AppSettings(max_upload_size_mb=2).max_upload_size_bytes == 2 * 1024 * 1024


class TestSettingsValidation:

    def test_gemini_requires_api_key(self):
        with pytest.raises(ValidationError):
            GeminiSettings()

    def test_validate_all_reports_missing_key(self):
        results = validate_all_settings()

        assert results["storage"] is True
        assert results["app"] is True
        assert results["gemini"] is False
        assert "gemini_error" in results

    def test_validate_all_with_key(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        assert validate_all_settings() == {"gemini": True, "storage": True, "app": True}
