"""
Tests for configuration loading.
"""
import pytest

from agrodecision.core.config import (
    AgroConfig, WeatherConfig, GDDConfig, get_config, set_config,
)
from agrodecision.core.types import GDDMethod


class TestAgroConfig:

    def test_defaults(self):
        config = AgroConfig()

        assert config.weather.cache_ttl_seconds == 3600
        assert config.weather.coordinate_precision == 4
        assert config.weather.sweep_period_seconds == 3600
        assert config.gdd.method == GDDMethod.SOIL_TEMPERATURE
        assert config.gdd.default_avg_daily_gdd == 20.0

    def test_nested_environment_override(self, monkeypatch):
        monkeypatch.setenv("AGRO_WEATHER__CACHE_TTL_SECONDS", "600")
        assert AgroConfig().weather.cache_ttl_seconds == 600

    def test_production_rejects_debug(self):
        with pytest.raises(ValueError):
            AgroConfig(environment="production", debug=True)

    def test_timeout_cannot_exceed_ttl(self):
        with pytest.raises(ValueError):
            AgroConfig(weather=WeatherConfig(cache_ttl_seconds=5, fetch_timeout_seconds=10))

    def test_yaml_round_trip(self, tmp_path):
        config = AgroConfig(gdd=GDDConfig(method=GDDMethod.THRESHOLD, default_avg_daily_gdd=18.0))
        path = tmp_path / "agro.yaml"

        config.to_yaml(path)
        loaded = AgroConfig.from_yaml(path)

        assert loaded.gdd.method == GDDMethod.THRESHOLD
        assert loaded.gdd.default_avg_daily_gdd == 18.0

    def test_missing_yaml(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AgroConfig.from_yaml(tmp_path / "missing.yaml")


def test_singleton():
    custom = AgroConfig(gdd=GDDConfig(default_avg_daily_gdd=25.0))
    set_config(custom)
    assert get_config() is custom


def test_yaml_must_be_a_mapping(tmp_path):
    from agrodecision.core.exceptions import ConfigurationError

    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        AgroConfig.from_yaml(path)


def test_setup_logging_applies_level(monkeypatch):
    import logging
    from agrodecision.core.config import LoggingConfig, setup_logging

    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    setup_logging(AgroConfig(logging=LoggingConfig(log_level="DEBUG")))

    assert calls["level"] == logging.DEBUG
    assert "%(name)s" in calls["format"]
