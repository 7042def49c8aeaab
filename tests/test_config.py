"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mmm.config import (
    AppSettings,
    GeminiSettings,
    StorageBackend,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from mmm.orchestrator import create_ledger_service, create_storage
from mmm.services.storage import InMemoryBlobStore, JsonFileBlobStore


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for settings sections."""

    def test_storage_defaults(self, monkeypatch):
        """Test the default backend is local JSON files."""
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("STORAGE_DATA_DIR", raising=False)
        settings = StorageSettings()
        assert settings.backend == StorageBackend.JSON
        assert settings.data_dir == Path(".mmm")
        assert settings.transactions_key == "mmm_transactions"
        assert settings.groups_key == "mmm_groups"

    def test_env_overrides(self, monkeypatch):
        """Test environment variables use the section prefix."""
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setenv("GEMINI_API_KEY", "secret")
        assert StorageSettings().backend == StorageBackend.MEMORY
        assert GeminiSettings().api_key == "secret"

    def test_invalid_log_level(self):
        """Test log level must be a known level name."""
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_image_limit_in_bytes(self):
        """Test the scan image limit converts MB to bytes."""
        assert AppSettings(max_scan_image_mb=2).max_scan_image_bytes == 2 * 1024 * 1024

    def test_sections_read_dotenv(self, monkeypatch, tmp_path):
        """Test every section picks up its prefixed keys from .env."""
        (tmp_path / ".env").write_text(
            "GEMINI_API_KEY=abc\n"
            "STORAGE_BACKEND=memory\n"
            "LOG_LEVEL=WARNING\n",
            encoding="utf-8",
        )
        for name in ("GEMINI_API_KEY", "STORAGE_BACKEND", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

        assert GeminiSettings().api_key == "abc"
        assert StorageSettings().backend == StorageBackend.MEMORY
        assert AppSettings().log_level == "WARNING"
        assert get_settings().storage.backend == StorageBackend.MEMORY

    def test_default_model_name(self, monkeypatch, tmp_path):
        """Test the default scanning model is a currently served one."""
        monkeypatch.delenv("GEMINI_MODEL_NAME", raising=False)
        monkeypatch.chdir(tmp_path)
        assert GeminiSettings(api_key=None).model_name == "gemini-3-flash-preview"

    def test_debug_mode_forces_debug_level(self, monkeypatch):
        """Test debug mode overrides the configured log level."""
        monkeypatch.delenv("DEBUG_MODE", raising=False)
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert AppSettings(log_level="ERROR").effective_log_level == "ERROR"
        assert AppSettings(log_level="ERROR", debug_mode=True).effective_log_level == "DEBUG"

    def test_create_ledger_service_honours_debug_mode(self, monkeypatch):
        """Test the factory configures logging from the effective level."""
        levels = []
        monkeypatch.setenv("DEBUG_MODE", "true")
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.setattr("mmm.orchestrator.configure_logging", levels.append)
        create_ledger_service()
        assert levels == ["DEBUG"]

    def test_validate_all_settings_reports_missing_key(self, monkeypatch):
        """Test startup checks flag a missing Gemini key without failing."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        results = validate_all_settings()
        assert results["storage"] is True
        assert results["gemini_key_present"] is False


class TestCreateStorage:
    """Tests for backend selection."""

    def test_memory_backend(self):
        """Test the memory backend builds an in-memory store."""
        assert isinstance(create_storage(StorageBackend.MEMORY), InMemoryBlobStore)

    def test_json_backend(self, monkeypatch, tmp_path):
        """Test the JSON backend writes under the configured data dir."""
        monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path))
        storage = create_storage(StorageBackend.JSON)
        assert isinstance(storage, JsonFileBlobStore)
        assert storage.data_dir == tmp_path

    def test_unconfigured_sheets_falls_back(self, monkeypatch):
        """Test Google Sheets without configuration falls back to memory."""
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        storage = create_storage(StorageBackend.GOOGLE_SHEETS)
        assert isinstance(storage, InMemoryBlobStore)
