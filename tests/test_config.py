"""Tests for settings validation and engine URL construction."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from patternatlas.config import Settings, get_settings
from patternatlas.db.engine import _build_url, create_db_engine
from patternatlas.exceptions import DatabaseError


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.default_limit == 20
        assert settings.max_limit == 100
        assert settings.case_insensitive_filters is False

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("PATTERNATLAS_MAX_LIMIT", "50")
        assert Settings(_env_file=None).max_limit == 50

    def test_default_above_max_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, default_limit=200, max_limit=100)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, store_timeout_seconds=0)

    def test_title_weight_must_dominate(self):
        with pytest.raises(PydanticValidationError):
            Settings(_env_file=None, title_weight=1.0, description_weight=1.0)

    def test_get_settings_wraps_errors(self, monkeypatch):
        monkeypatch.setenv("PATTERNATLAS_MAX_LIMIT", "not-a-number")
        with pytest.raises(RuntimeError, match="Failed to load Pattern Atlas settings"):
            get_settings()


class TestEngineUrl:
    def test_plain_sqlite_path(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'nested' / 'store.db'}"
        assert _build_url(Settings(_env_file=None, database_url=url)) == url
        assert (tmp_path / "nested").is_dir()

    def test_encryption_key_switches_dialect(self, tmp_path):
        db_path = tmp_path / "secure.db"
        settings = Settings(
            _env_file=None,
            database_url=f"sqlite:///{db_path}",
            db_encryption_key="s3cret",
        )
        assert _build_url(settings) == f"sqlite+pysqlcipher://:s3cret@/{db_path}"

    def test_encrypted_memory_store_rejected(self):
        settings = Settings(
            _env_file=None, database_url="sqlite://", db_encryption_key="s3cret"
        )
        with pytest.raises(DatabaseError):
            _build_url(settings)

    def test_non_sqlite_url_untouched(self):
        url = "postgresql+psycopg://user:pw@localhost/patterns"
        settings = Settings(_env_file=None, database_url=url, db_encryption_key="ignored")
        assert _build_url(settings) == url

    def test_sqlite_engine_gets_pragmas(self, tmp_path):
        settings = Settings(_env_file=None, database_url=f"sqlite:///{tmp_path / 'p.db'}")
        engine = create_db_engine(settings)
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1
        engine.dispose()
