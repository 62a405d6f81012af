from __future__ import annotations

from datetime import timedelta

import pytest

from gatehouse.core.config import (
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    access_lifetime,
    env_bool,
    env_float,
    env_int,
    get_config,
    refresh_lifetime,
    validate_auth_settings,
)


@pytest.mark.parametrize("raw", ["1", "true", "YES", " on ", "y"])
def test_env_bool_truthy(monkeypatch, raw):
    monkeypatch.setenv("GH_FLAG", raw)
    assert env_bool("GH_FLAG") is True


@pytest.mark.parametrize("raw", ["0", "false", "no", "", "nope"])
def test_env_bool_falsy(monkeypatch, raw):
    monkeypatch.setenv("GH_FLAG", raw)
    assert env_bool("GH_FLAG", default=True) is False


def test_env_helpers_fall_back_to_defaults(monkeypatch):
    monkeypatch.delenv("GH_NUM", raising=False)
    assert env_bool("GH_NUM", default=True) is True
    assert env_int("GH_NUM", 7) == 7
    assert env_float("GH_NUM", 0.5) == 0.5

    monkeypatch.setenv("GH_NUM", "  ")
    assert env_int("GH_NUM", 7) == 7


def test_env_numbers_are_parsed(monkeypatch):
    monkeypatch.setenv("GH_NUM", "42")
    assert env_int("GH_NUM", 0) == 42
    assert env_float("GH_NUM", 0.0) == 42.0


@pytest.mark.parametrize(
    "name,expected",
    [
        ("production", ProductionConfig),
        ("Testing", TestingConfig),
        ("development", DevelopmentConfig),
        ("staging", DevelopmentConfig),
    ],
)
def test_get_config_selects_by_app_env(monkeypatch, name, expected):
    monkeypatch.setenv("APP_ENV", name)
    assert get_config() is expected


def _settings(**overrides):
    base = {
        "JWT_SECRET_KEY": "secret",
        "TOKEN_ISSUER": "gatehouse",
        "ACCESS_TOKEN_MINUTES": 15,
        "REFRESH_TOKEN_HOURS": 72,
    }
    base.update(overrides)
    return base


def test_lifetimes_come_from_settings():
    cfg = _settings(ACCESS_TOKEN_MINUTES=5, REFRESH_TOKEN_HOURS=1)

    assert access_lifetime(cfg) == timedelta(minutes=5)
    assert refresh_lifetime(cfg) == timedelta(hours=1)


def test_valid_settings_pass():
    validate_auth_settings(_settings())


@pytest.mark.parametrize(
    "overrides,match",
    [
        ({"JWT_SECRET_KEY": ""}, "JWT_SECRET_KEY"),
        ({"TOKEN_ISSUER": ""}, "TOKEN_ISSUER"),
        ({"ACCESS_TOKEN_MINUTES": 0}, "positive"),
        ({"REFRESH_TOKEN_HOURS": -1}, "positive"),
    ],
)
def test_unusable_settings_are_refused(overrides, match):
    with pytest.raises(RuntimeError, match=match):
        validate_auth_settings(_settings(**overrides))


def test_testing_config_keeps_side_effects_off():
    assert TestingConfig.WHITELIST_BACKEND == "memory"
    assert TestingConfig.WHITELIST_REAPER_ENABLED is False
    assert TestingConfig.LEGACY_API_URL == ""
