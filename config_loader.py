"""
config_loader.py — Unified configuration loader
================================================
Merges config.tech.yaml (infrastructure settings) and config.content.yaml
(owner-specific content settings, e.g. the seed fixture) into a single dict,
then validates it into AppSettings.

Precedence: config.content.yaml values overwrite config.tech.yaml values
on top-level key collision (content is user-specific, tech is more generic
defaults). The CV_DATABASE_PATH environment variable overrides
database.path last.
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

ROOT = Path(__file__).parent
DATABASE_PATH_ENV = "CV_DATABASE_PATH"


def load_config(root: Path | str | None = None) -> dict:
    """
    Load and merge config.tech.yaml + config.content.yaml.

    Args:
        root: Project root directory. Defaults to the directory containing
              this file (i.e. the project root).

    Returns:
        Merged configuration dict (tech settings + content settings).
    """
    if root is None:
        root = ROOT
    root = Path(root)

    merged: dict = {}
    for name in ("config.tech.yaml", "config.content.yaml"):
        path = root / name
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}
            merged.update(data)

    return merged


# ─────────────────────────────────────────────────────────────────────────────
# SETTINGS MODELS
# ─────────────────────────────────────────────────────────────────────────────

class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    trusted_proxies: list[str] = ["127.0.0.1", "::1"]


class DatabaseSettings(BaseModel):
    path: str = "db/cv.db"          # ":memory:" selects the ephemeral backend


class CacheSettings(BaseModel):
    enable_caching: bool = False
    expiration_minutes: int = Field(5, ge=1)


class RateLimitSettings(BaseModel):
    enable_rate_limiting: bool = True
    permit_limit: int = Field(100, ge=1)
    window: int = Field(60, ge=1)   # seconds


class CorsSettings(BaseModel):
    allowed_origins: list[str] = []  # empty → any origin


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[str] = "logs/cvbackend.log"


class SeedSettings(BaseModel):
    enabled: bool = True
    source_path: str = "data/seed.yaml"


class AppSettings(BaseModel):
    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    cache: CacheSettings = CacheSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    cors: CorsSettings = CorsSettings()
    logging: LoggingSettings = LoggingSettings()
    seed: SeedSettings = SeedSettings()

    def resolve(self, path: str, root: Path | str | None = None) -> Path:
        """Resolve a configured relative path against the project root."""
        p = Path(path)
        return p if p.is_absolute() else Path(root or ROOT) / p


def load_settings(root: Path | str | None = None) -> AppSettings:
    """Load, merge and validate settings. Raises pydantic.ValidationError on bad values."""
    data = load_config(root)
    env_path = os.environ.get(DATABASE_PATH_ENV)
    if env_path:
        data["database"] = {**(data.get("database") or {}), "path": env_path}
    return AppSettings.model_validate(data)
