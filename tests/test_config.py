# Configuration & logging setup tests
# Dependent files: config_loader.py, app/logging_setup.py, config.tech.yaml, config.content.yaml

import logging
import logging.handlers
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from app.logging_setup import configure_logging
from config_loader import DATABASE_PATH_ENV, AppSettings, load_config, load_settings


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch):
    monkeypatch.delenv(DATABASE_PATH_ENV, raising=False)


def write_yaml(path: Path, data: dict) -> None:
    path.write_text(yaml.safe_dump(data))


# --- load_config ---

def test_content_overrides_tech(tmp_path):
    write_yaml(tmp_path / "config.tech.yaml", {
        "cache": {"enable_caching": False},
        "seed": {"enabled": False},
    })
    write_yaml(tmp_path / "config.content.yaml", {"seed": {"enabled": True}})
    merged = load_config(tmp_path)
    assert merged == {"cache": {"enable_caching": False}, "seed": {"enabled": True}}


def test_missing_files_yield_empty_config(tmp_path):
    assert load_config(tmp_path) == {}


# --- load_settings ---

def test_defaults(tmp_path):
    settings = load_settings(tmp_path)
    assert settings.database.path == "db/cv.db"
    assert settings.cache.enable_caching is False
    assert settings.cache.expiration_minutes == 5
    assert settings.rate_limit.enable_rate_limiting is True
    assert settings.rate_limit.permit_limit == 100
    assert settings.rate_limit.window == 60
    assert settings.cors.allowed_origins == []
    assert settings.logging.file == "logs/cvbackend.log"
    assert settings.seed.enabled is True


def test_repository_config_files():
    settings = load_settings()
    assert settings.cache.enable_caching is True
    assert settings.seed.source_path == "data/seed.yaml"


def test_environment_overrides_database_path(tmp_path, monkeypatch):
    write_yaml(tmp_path / "config.tech.yaml", {"database": {"path": "db/other.db"}})
    monkeypatch.setenv(DATABASE_PATH_ENV, ":memory:")
    assert load_settings(tmp_path).database.path == ":memory:"


@pytest.mark.parametrize("section", [
    {"cache": {"expiration_minutes": 0}},
    {"cache": {"expiration_minutes": "soon"}},
    {"rate_limit": {"permit_limit": 0}},
])
def test_invalid_values_rejected(tmp_path, section):
    write_yaml(tmp_path / "config.tech.yaml", section)
    with pytest.raises(ValidationError):
        load_settings(tmp_path)


def test_resolve_paths(tmp_path):
    settings = AppSettings()
    assert settings.resolve("data/seed.yaml", tmp_path) == tmp_path / "data" / "seed.yaml"
    absolute = tmp_path / "elsewhere.db"
    assert settings.resolve(str(absolute)) == absolute


# --- Logging ---

def installed_handlers():
    return [h for h in logging.getLogger("cv").handlers if getattr(h, "_cv_handler", False)]


def test_configure_logging_is_idempotent(tmp_path):
    log_file = tmp_path / "logs" / "cvbackend.log"
    configure_logging("DEBUG", log_file)
    configure_logging("DEBUG", log_file)
    try:
        handlers = installed_handlers()
        assert len(handlers) == 2
        assert any(isinstance(h, logging.handlers.TimedRotatingFileHandler) for h in handlers)
        assert logging.getLogger("cv").level == logging.DEBUG

        logging.getLogger("cv.test").info("hello file")
        for h in handlers:
            h.flush()
        assert "hello file" in log_file.read_text()
    finally:
        configure_logging("INFO", None)
    assert len(installed_handlers()) == 1
