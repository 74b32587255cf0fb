"""
Configuration system with validation and environment awareness.
Based on Pydantic Settings; decision thresholds live in core.constants.
"""
import logging
from pathlib import Path
import yaml
from pydantic import Field, field_validator, model_validator, ConfigDict
from pydantic_settings import BaseSettings
from typing import Optional, Literal, Union

from agrodecision.core.constants import (
    COORDINATE_PRECISION, DEFAULT_AVG_DAILY_GDD, FORECAST_HORIZON_DAYS, WEATHER_CACHE_TTL_SECONDS,
)
from agrodecision.core.exceptions import ConfigurationError
from agrodecision.core.types import GDDMethod


class WeatherConfig(BaseSettings):
    """Configuration for the forecast provider and its cache"""

    # Cache
    cache_ttl_seconds: int = Field(WEATHER_CACHE_TTL_SECONDS, gt=0, description="Lifetime of a cached forecast")
    coordinate_precision: int = Field(COORDINATE_PRECISION, ge=0, le=6, description="Decimals kept in cache keys")
    sweep_interval_seconds: Optional[int] = Field(
        None, gt=0, description="Background sweep period (defaults to the TTL)"
    )

    # Fetching
    fetch_timeout_seconds: float = Field(10.0, gt=0, description="Max wait for a forecast")
    http_timeout_seconds: float = Field(10.0, gt=0)
    max_workers: int = Field(4, ge=1, description="Concurrent forecast fetches")
    forecast_days: int = Field(FORECAST_HORIZON_DAYS, ge=1, le=16)
    forecast_url: str = Field("https://api.open-meteo.com/v1/forecast")
    timezone: str = Field("auto")

    model_config = ConfigDict(env_prefix="AGRO_WEATHER_", case_sensitive=False)

    @property
    def sweep_period_seconds(self) -> int:
        return self.sweep_interval_seconds or self.cache_ttl_seconds


class GDDConfig(BaseSettings):
    """Configuration for growing degree day tracking"""

    method: GDDMethod = Field(
        GDDMethod.SOIL_TEMPERATURE,
        description="How daily GDD is derived from the daily temperature aggregate"
    )
    default_avg_daily_gdd: float = Field(
        DEFAULT_AVG_DAILY_GDD, gt=0, description="Regional average used when no history exists"
    )
    backfill_workers: int = Field(4, ge=1, description="Fields backfilled concurrently")

    model_config = ConfigDict(env_prefix="AGRO_GDD_", case_sensitive=False)


class LoggingConfig(BaseSettings):
    """Configuration for logging"""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: str = Field(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    model_config = ConfigDict(env_prefix="AGRO_LOGGING_", case_sensitive=False)


class AgroConfig(BaseSettings):
    """Main configuration for the decision engine"""

    project_name: str = "agrodecision"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    gdd: GDDConfig = Field(default_factory=GDDConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        env_prefix="AGRO_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @field_validator("environment", mode="before")
    @classmethod
    def normalise_environment(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_config(self):
        """Cross-field validation"""
        if self.environment == "production" and self.debug:
            raise ValueError("Debug mode cannot be enabled in production")
        if self.weather.fetch_timeout_seconds > self.weather.cache_ttl_seconds:
            raise ValueError("Forecast fetch timeout cannot exceed the cache TTL")
        return self

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "AgroConfig":
        """Load configuration from YAML file"""
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {yaml_path}")

        return cls(**yaml_config)

    def to_yaml(self, yaml_path: Union[str, Path]):
        """Save configuration to YAML file"""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(mode="json"), f, default_flow_style=False)


def setup_logging(config: Optional[AgroConfig] = None) -> None:
    """Configure root logging from the logging section"""
    config = config or get_config()
    logging.basicConfig(
        level=getattr(logging, config.logging.log_level),
        format=config.logging.log_format,
    )


# Global configuration instance
_config: Optional[AgroConfig] = None


def get_config(config_path: Optional[Path] = None) -> AgroConfig:
    """Get or create configuration instance (singleton pattern)"""
    global _config

    if _config is None:
        if config_path and Path(config_path).exists():
            _config = AgroConfig.from_yaml(config_path)
        else:
            # Try to load from environment
            _config = AgroConfig()

    return _config


def set_config(config: Optional[AgroConfig]):
    """Set configuration (useful for testing); None resets the singleton"""
    global _config
    _config = config
