"""Tests for environment settings and logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from server.config import Settings
from server.logging_config import PollAccessFilter, get_logging_config


def test_defaults_match_original_server() -> None:
    settings = Settings.from_env({})

    assert settings.port == 8080
    assert settings.store == "memory"
    assert settings.timeout_ms == 5000
    assert settings.nickname_max_length == 20
    assert settings.sweep_interval_s is None
    assert settings.allowed_origins == ("*",)


def test_env_overrides() -> None:
    settings = Settings.from_env(
        {
            "PORT": "9000",
            "DUEL_STORE": "JSON",
            "DUEL_STORE_PATH": "/tmp/duel.json",
            "DUEL_TIMEOUT_MS": "2500",
            "DUEL_SWEEP_INTERVAL_S": "1.5",
            "ALLOWED_ORIGINS": "http://a.example, http://b.example",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.port == 9000
    assert settings.store == "json"
    assert settings.store_path == Path("/tmp/duel.json")
    assert settings.timeout_ms == 2500
    assert settings.sweep_interval_s == 1.5
    assert settings.allowed_origins == ("http://a.example", "http://b.example")
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "env",
    [
        {"PORT": "eighty"},
        {"DUEL_TIMEOUT_MS": "0"},
        {"DUEL_STORE": "mongo"},
        {"DUEL_SWEEP_INTERVAL_S": "-1"},
    ],
)
def test_invalid_settings_raise(env) -> None:
    with pytest.raises(ValueError):
        Settings.from_env(env)


def _access_record(message: str) -> logging.LogRecord:
    return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 1, message, None, None)


def test_poll_filter_drops_state_polls_only() -> None:
    access_filter = PollAccessFilter()

    assert access_filter.filter(_access_record('1.2.3.4 - "GET /getState/0042,true HTTP/1.1" 200')) is False
    assert access_filter.filter(_access_record('1.2.3.4 - "POST /create/Alice HTTP/1.1" 201')) is True


def test_logging_config_applies_level() -> None:
    config = get_logging_config("DEBUG")

    assert config["loggers"]["duel"]["level"] == "DEBUG"
    assert config["handlers"]["access"]["filters"] == ["poll_access_filter"]
