from __future__ import annotations

import pytest

from ledgerboard.config import BaseConfig, TestConfig
from ledgerboard.errors import (
    MSG_INVALID_INPUT,
    MSG_NOT_SIGNED_IN,
    MSG_TRY_AGAIN,
    LinkedTaskError,
    NotAuthenticatedError,
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    ValidationError,
    user_message,
)


def test_config_reads_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGERBOARD_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LEDGERBOARD_MAX_AMOUNT", "5000")
    monkeypatch.setenv("LEDGERBOARD_DEV_MODE", "yes")
    monkeypatch.delenv("LEDGERBOARD_DATABASE_URL", raising=False)

    config = BaseConfig()

    assert config.DATA_DIR == (tmp_path / "data").resolve()
    assert config.DATA_DIR.is_dir()
    assert config.DATABASE_URL == f"sqlite:///{config.DATA_DIR / 'ledgerboard.db'}"
    assert config.MAX_AMOUNT == 5000.0
    assert config.DEV_MODE is True
    assert config.sqlalchemy_engine_options() == {"connect_args": {"check_same_thread": False}}


def test_malformed_max_amount_falls_back(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGERBOARD_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LEDGERBOARD_MAX_AMOUNT", "lots")

    assert BaseConfig().MAX_AMOUNT == BaseConfig.DEFAULT_MAX_AMOUNT


def test_production_requires_secret_key(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGERBOARD_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("LEDGERBOARD_DEV_MODE", "false")
    monkeypatch.delenv("LEDGERBOARD_SECRET_KEY", raising=False)

    with pytest.raises(ValueError):
        BaseConfig()

    monkeypatch.setenv("LEDGERBOARD_SECRET_KEY", "s3cret")
    assert BaseConfig().DEV_MODE is False


def test_test_config_uses_shared_in_memory_database(tmp_path, monkeypatch):
    monkeypatch.setenv("LEDGERBOARD_DATA_DIR", str(tmp_path))

    config = TestConfig()

    assert config.DATABASE_URL == "sqlite://"
    assert "poolclass" in config.sqlalchemy_engine_options()


@pytest.mark.parametrize(
    "exc,expected",
    [
        (ValidationError("bad amount", field="amount"), MSG_INVALID_INPUT),
        (LinkedTaskError("linked"), MSG_INVALID_INPUT),
        (NotAuthenticatedError(), MSG_NOT_SIGNED_IN),
        (NotFoundError("gone"), MSG_TRY_AGAIN),
        (PermissionDeniedError("denied"), MSG_TRY_AGAIN),
        (StoreError("disk full"), MSG_TRY_AGAIN),
        (RuntimeError("boom"), MSG_TRY_AGAIN),
    ],
)
def test_user_messages(exc, expected):
    assert user_message(exc) == expected


def test_error_hierarchy_interoperates_with_builtins():
    assert isinstance(ValidationError("x"), ValueError)
    assert isinstance(NotFoundError("x"), LookupError)
    assert ValidationError("x", field="title").field == "title"
    assert str(NotAuthenticatedError()) == "User not authenticated"
