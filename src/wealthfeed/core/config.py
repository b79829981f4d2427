"""Configuration loading, validation, and access."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from wealthfeed.core.exceptions import ConfigError


class _SourceConfig(BaseModel):
    """Settings shared by every upstream source client."""

    # Numeric-looking API keys arrive from env vars as ints
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    base_url: str
    timeout: float = 10.0

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class YahooConfig(_SourceConfig):
    """Yahoo Finance chart/search API configuration."""

    base_url: str = "https://query1.finance.yahoo.com"
    timeout: float = 15.0


class CoinGeckoConfig(_SourceConfig):
    """CoinGecko API configuration.

    Free tier allows ~30 requests/minute, hence the 2 s minimum interval.
    Setting api_key switches to the pro endpoint.
    """

    base_url: str = "https://api.coingecko.com/api/v3"
    pro_base_url: str = "https://pro-api.coingecko.com/api/v3"
    api_key: str | None = None
    min_interval: float = 2.0

    @field_validator("min_interval")
    @classmethod
    def interval_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("min_interval must be >= 0")
        return v


class FrankfurterConfig(_SourceConfig):
    """Frankfurter (ECB reference rates) configuration."""

    base_url: str = "https://api.frankfurter.app"
    cache_ttl: float = 24 * 60 * 60

    @field_validator("cache_ttl")
    @classmethod
    def ttl_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("cache_ttl must be > 0")
        return v


class MetalsConfig(_SourceConfig):
    """metals.dev configuration.

    Free tier allows 50 requests/day, so requests are spaced 30 minutes
    apart and single-metal prices are cached for 5 minutes.
    """

    base_url: str = "https://metals.dev"
    api_key: str | None = None
    min_interval: float = 30 * 60
    cache_ttl: float = 5 * 60

    @field_validator("min_interval")
    @classmethod
    def interval_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("min_interval must be >= 0")
        return v

    @field_validator("cache_ttl")
    @classmethod
    def ttl_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("cache_ttl must be > 0")
        return v


class CurrencyConfig(BaseModel):
    """Currency converter configuration."""

    model_config = ConfigDict(frozen=True)

    cache_ttl: float = 60 * 60
    default_locale: str = "en-US"

    @field_validator("cache_ttl")
    @classmethod
    def ttl_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("cache_ttl must be > 0")
        return v


class RefreshConfig(BaseModel):
    """Price refresh configuration."""

    model_config = ConfigDict(frozen=True)

    crypto_vs_currency: str = "usd"
    sync_base_currency: str = "USD"

    @field_validator("crypto_vs_currency")
    @classmethod
    def vs_lower(cls, v: str) -> str:
        return v.lower()

    @field_validator("sync_base_currency")
    @classmethod
    def base_upper(cls, v: str) -> str:
        return v.upper()


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    sqlite_path: str = "./data/wealthfeed.db"


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str | None = None


class LoggingConfig(BaseModel):
    """Root logger configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("level")
    @classmethod
    def level_known(cls, v: str) -> str:
        upper = v.upper()
        if upper not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v!r}")
        return upper


class WealthfeedConfig(BaseModel):
    """Root configuration for the entire wealthfeed system."""

    model_config = ConfigDict(frozen=True)

    yahoo: YahooConfig = YahooConfig()
    coingecko: CoinGeckoConfig = CoinGeckoConfig()
    frankfurter: FrankfurterConfig = FrankfurterConfig()
    metals: MetalsConfig = MetalsConfig()
    currency: CurrencyConfig = CurrencyConfig()
    refresh: RefreshConfig = RefreshConfig()
    storage: StorageConfig = StorageConfig()
    api: APIConfig = APIConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "WEALTHFEED_",
) -> WealthfeedConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (WEALTHFEED_METALS__API_KEY, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        WEALTHFEED_COINGECKO__MIN_INTERVAL=5  ->  coingecko.min_interval = 5
    """
    try:
        yaml_path = _resolve_config_path(config_path)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return WealthfeedConfig.model_validate(merged)
    except Exception as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def configure_logging(config: LoggingConfig) -> None:
    """Apply the logging section to the root logger."""
    logging.basicConfig(level=config.level, format=config.format)


def _resolve_config_path(explicit: str | None) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_path = os.environ.get("WEALTHFEED_CONFIG")
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from WEALTHFEED_CONFIG not found: {env_path}",
                context={"field": "WEALTHFEED_CONFIG", "value": env_path},
            )
        return p

    default = Path("wealthfeed.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"YAML config must be a mapping, got {type(data).__name__}",
                context={"field": "config_file", "value": str(path)},
            )
        return data
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = dict(base)

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        remainder = key[len(prefix) :]
        parts = [p.lower() for p in remainder.split("__")]

        if parts == ["config"]:
            continue

        target = result
        for part in parts[:-1]:
            existing = target.get(part)
            existing = dict(existing) if isinstance(existing, dict) else {}
            target[part] = existing
            target = existing
        target[parts[-1]] = _auto_cast(value)

    return result


def _auto_cast(value: str) -> str | int | float | bool:
    """Auto-cast string values from environment variables."""
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value
