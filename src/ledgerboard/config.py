"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, falling back on malformed values."""

    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "Ledgerboard"
    DB_FILENAME = "ledgerboard.db"
    ENV_PREFIX = "LEDGERBOARD_"
    DEFAULT_MAX_AMOUNT = 1_000_000_000.0
    DESCRIPTION_MAX_LENGTH = 200
    TASK_DESCRIPTION_MAX_LENGTH = 500

    def __init__(self) -> None:
        self.SECRET_KEY = os.getenv("LEDGERBOARD_SECRET_KEY", "replace-me")
        self.DEV_MODE = _env_bool("LEDGERBOARD_DEV_MODE", default=True)
        self.DATA_DIR = self._resolve_data_dir()
        self.DATABASE_URL = os.getenv("LEDGERBOARD_DATABASE_URL", self._build_sqlite_url())
        self.MAX_AMOUNT = _env_float("LEDGERBOARD_MAX_AMOUNT", self.DEFAULT_MAX_AMOUNT)
        if not self.DEV_MODE and self.SECRET_KEY == "replace-me":
            raise ValueError("LEDGERBOARD_SECRET_KEY must be set in non-dev mode.")

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("LEDGERBOARD_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        return f"sqlite:///{self.DATA_DIR / self.DB_FILENAME}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        engine_options: dict[str, Any] = {}
        if self.DATABASE_URL.startswith("sqlite"):
            engine_options["connect_args"] = {"check_same_thread": False}
        return engine_options


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestConfig(BaseConfig):
    """Configuration for the test-suite: in-memory SQLite, dev logging."""

    DEBUG = True
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DEV_MODE = True
        self.DATABASE_URL = "sqlite://"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        # A single shared connection keeps the in-memory database alive across sessions.
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
