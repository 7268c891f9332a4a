"""
Tests for configuration, structured logging and the session helpers.
"""

import json
import logging

import pytest

from aspcatalog.config import Settings
from aspcatalog.db import session as db_session_module
from aspcatalog.logging_config import get_logger, setup_logging
from aspcatalog.main import create_catalog_app
from aspcatalog.policy.filters import StorefrontContext
from aspcatalog.policy.rules import SiteMode


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("SITE_MODE", raising=False)
        settings = Settings(_env_file=None)
        assert settings.site_mode == SiteMode.ALL
        assert settings.brand_provider == "fanza"
        assert settings.brand_code_tag == "FANZA"
        assert settings.preferred_providers == []

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SITE_MODE", "single-brand-only")
        monkeypatch.setenv("PREFERRED_PROVIDERS", '["MGS", "DUGA"]')
        monkeypatch.setenv("BRAND_PROVIDER", "DMM")
        settings = Settings(_env_file=None)

        context = StorefrontContext.from_settings(settings)
        assert context.site_mode == SiteMode.SINGLE_BRAND_ONLY
        assert context.brand == "fanza"
        assert context.preferred_providers == ("MGS", "DUGA")

    def test_invalid_site_mode_rejected(self, monkeypatch):
        monkeypatch.setenv("SITE_MODE", "everything")
        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestLogging:
    """Test the JSON log handlers."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_file_output(self, tmp_path):
        setup_logging(base_dir=tmp_path, level="INFO")
        logger = get_logger("aspcatalog.test", site_mode="all")
        logger.info("selection done")
        logger.error("selection failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        app_lines = (tmp_path / "logs" / "app.log").read_text().splitlines()
        record = json.loads(app_lines[0])
        assert record["message"] == "selection done"
        assert record["level"] == "INFO"
        assert record["logger"] == "aspcatalog.test"
        assert record["site_mode"] == "all"

        error_lines = (tmp_path / "logs" / "error.log").read_text().splitlines()
        assert len(error_lines) == 1
        assert json.loads(error_lines[0])["message"] == "selection failed"

    def test_level_filters_debug(self, tmp_path):
        setup_logging(base_dir=tmp_path, level="WARNING")
        get_logger("aspcatalog.test").info("hidden")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert (tmp_path / "logs" / "app.log").read_text() == ""


class TestSessionHelpers:
    """Test engine and session factory helpers."""

    async def test_get_db_commits(self, monkeypatch):
        monkeypatch.setattr(db_session_module.settings, "database_url", "sqlite+aiosqlite:///:memory:")
        await db_session_module.dispose_engine()
        try:
            factory = db_session_module.get_session_factory()
            assert db_session_module.get_session_factory() is factory

            sessions = db_session_module.get_db()
            session = await sessions.__anext__()
            assert session.is_active
            with pytest.raises(StopAsyncIteration):
                await sessions.__anext__()
        finally:
            await db_session_module.dispose_engine()


class TestStartup:
    """Test process start-up wiring."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_create_catalog_app(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SITE_MODE", "single-brand-only")
        monkeypatch.setenv("BRAND_PROVIDER", "dmm")
        monkeypatch.setenv("METRICS_ENABLED", "false")
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        app = create_catalog_app(Settings(_env_file=None), base_dir=tmp_path)

        assert app.context.site_mode == SiteMode.SINGLE_BRAND_ONLY
        assert app.context.brand == "fanza"
        assert app.service.metrics_enabled is False
        assert logging.getLogger().level == logging.WARNING

        get_logger("aspcatalog.test").warning("started")
        for handler in logging.getLogger().handlers:
            handler.flush()
        record = json.loads((tmp_path / "logs" / "app.log").read_text().splitlines()[0])
        assert record["message"] == "started"

    def test_log_dir_from_settings(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_DIR", str(tmp_path))
        create_catalog_app(Settings(_env_file=None))
        assert (tmp_path / "logs" / "app.log").exists()
