"""Runtime settings: YAML loading, environment overrides and engine wiring."""

from __future__ import annotations

import logging

import pytest
import yaml
from sqlalchemy import func, select

from freight_config import FreightSettings, load_settings, parse_settings
from freight_config.loader import CONFIG_FILE_ENV, DATABASE_URL_ENV
from freight_kernel.db.engine import (
    create_tables,
    get_engine,
    init_engine_from_settings,
    reset_engine,
    session_scope,
)
from freight_modules.access.orm import UserProfileModel
from freight_modules.access.permissions import seed_profile


class TestLoadSettings:

    def test_packaged_defaults(self):
        settings = load_settings(environ={})
        assert settings == FreightSettings(database_url="sqlite:///freight.db")
        assert settings.log_level_value == logging.INFO

    def test_database_url_override(self):
        settings = load_settings(environ={DATABASE_URL_ENV: "postgresql://erp@db/freight"})
        assert settings.database_url == "postgresql://erp@db/freight"
        assert settings.overpayment_requires_confirmation is True

    def test_config_file_from_environment(self, tmp_path):
        path = tmp_path / "freight.yaml"
        path.write_text(yaml.safe_dump({
            "database": {"url": "sqlite:///:memory:", "echo": True},
            "logging": {"level": "debug"},
            "invoicing": {"overpayment_requires_confirmation": False},
        }))
        settings = load_settings(environ={CONFIG_FILE_ENV: str(path)})
        assert settings.sql_echo is True
        assert settings.log_level == "DEBUG"
        assert settings.overpayment_requires_confirmation is False

    def test_explicit_path_wins(self, tmp_path):
        path = tmp_path / "explicit.yaml"
        path.write_text("database:\n  url: sqlite:///explicit.db\n")
        settings = load_settings(path, environ={CONFIG_FILE_ENV: "/nonexistent.yaml"})
        assert settings.database_url == "sqlite:///explicit.db"

    def test_empty_file_needs_database_url(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(KeyError):
            load_settings(path, environ={})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yaml", environ={})


class TestParseSettings:

    def test_unknown_level(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            parse_settings({"database": {"url": "sqlite://"}, "logging": {"level": "LOUD"}})

    def test_sections_optional(self):
        settings = parse_settings({"database": {"url": "sqlite://"}})
        assert settings.log_level == "INFO"
        assert settings.overpayment_requires_confirmation is True


class TestEngineFromSettings:

    def test_in_memory_engine(self):
        settings = FreightSettings(database_url="sqlite:///:memory:")
        try:
            engine = init_engine_from_settings(settings)
            assert get_engine() is engine
            create_tables()
            with session_scope() as db:
                db.add(UserProfileModel.from_dto(
                    seed_profile("admin@example.com", "Admin", "admin")
                ))
            with session_scope() as db:
                assert db.scalar(select(func.count()).select_from(UserProfileModel)) == 1
        finally:
            reset_engine()

    def test_uninitialized_engine(self):
        reset_engine()
        with pytest.raises(RuntimeError):
            get_engine()
