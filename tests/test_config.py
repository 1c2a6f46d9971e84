"""Tests for environment driven service configuration."""

from __future__ import annotations

import logging

import pytest

from mathcache import config as config_module
from mathcache.config import ConfigError, ServiceConfig


def test_defaults_without_environment() -> None:
    config = ServiceConfig.from_env({})
    assert config == ServiceConfig()
    assert config.host == "0.0.0.0"
    assert config.port == 8003
    assert config.store == "memory"
    assert config.redis_url == "redis://127.0.0.1:6379/0"
    assert config.logging_level == logging.INFO


def test_environment_overrides_defaults() -> None:
    config = ServiceConfig.from_env(
        {
            "MATHCACHE_HOST": "127.0.0.1",
            "MATHCACHE_PORT": "9000",
            "MATHCACHE_STORE": " Redis ",
            "REDIS_URL": "redis://cache:6379/2",
            "LOG_LEVEL": "debug",
        }
    )
    assert config.host == "127.0.0.1"
    assert config.port == 9000
    assert config.store == "redis"
    assert config.redis_url == "redis://cache:6379/2"
    assert config.log_level == "DEBUG"
    assert config.logging_level == logging.DEBUG


@pytest.mark.parametrize(
    "environ",
    [
        {"MATHCACHE_PORT": "http"},
        {"MATHCACHE_PORT": "70000"},
        {"MATHCACHE_STORE": "memcached"},
        {"LOG_LEVEL": "LOUD"},
    ],
)
def test_invalid_values_raise(environ: dict[str, str]) -> None:
    with pytest.raises(ConfigError):
        ServiceConfig.from_env(environ)


def test_with_overrides_ignores_none() -> None:
    base = ServiceConfig()
    assert base.with_overrides(host=None, port=None) is base

    updated = base.with_overrides(port=8080, store="redis", host=None)
    assert updated.port == 8080
    assert updated.store == "redis"
    assert updated.host == base.host


def test_with_overrides_validates() -> None:
    with pytest.raises(ConfigError):
        ServiceConfig().with_overrides(port=0)


def test_from_env_validates_port_once(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[object] = []
    original = config_module._parse_port

    def counting_parse(raw: object) -> int:
        seen.append(raw)
        return original(raw)

    monkeypatch.setattr(config_module, "_parse_port", counting_parse)
    config = ServiceConfig.from_env({"MATHCACHE_PORT": "9001"})

    assert config.port == 9001
    assert seen.count("9001") == 1
