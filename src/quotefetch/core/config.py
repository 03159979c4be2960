"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator

from quotefetch.core.exceptions import ConfigError

_DEFAULT_USER_AGENT = "Mozilla/5.0 (X11; U; Linux i686) Gecko/20071127 Firefox/2.0.0.11"


class FetchConfig(BaseModel):
    """Settings shared by every provider and the orchestrator."""

    model_config = ConfigDict(frozen=True)

    request_delay_ms: int = 100
    request_timeout: float = 15.0
    user_agent: str = _DEFAULT_USER_AGENT
    strict_parsing: bool = False

    @field_validator("request_delay_ms")
    @classmethod
    def delay_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("request_delay_ms must be >= 0")
        return v

    @field_validator("request_timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be > 0")
        return v


class YahooConfig(BaseModel):
    """Yahoo Finance portal endpoints and session policy."""

    model_config = ConfigDict(frozen=True)

    home_url: str = "https://finance.yahoo.com"
    crumb_url: str = "https://query1.finance.yahoo.com/v1/test/getcrumb"
    base_url: str = "https://query1.finance.yahoo.com"
    reuse_session: bool = False


class TiingoConfig(BaseModel):
    """Tiingo REST API access."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.tiingo.com"
    token: str | None = None


class GdaxConfig(BaseModel):
    """GDAX candle API pagination."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://api.gdax.com"
    window_delay: float = 1.0
    max_candles: int = 200

    @field_validator("max_candles")
    @classmethod
    def max_candles_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_candles must be >= 1")
        return v

    @field_validator("window_delay")
    @classmethod
    def window_delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("window_delay must be >= 0")
        return v


class NasdaqConfig(BaseModel):
    """Nasdaq symbol directory (anonymous FTP) and screener downloads."""

    model_config = ConfigDict(frozen=True)

    ftp_host: str = "ftp.nasdaqtrader.com"
    ftp_port: int = 21
    ftp_directory: str = "symboldirectory"
    ftp_filename: str = "otherlisted.txt"
    ftp_timeout: float = 5.0


class LoggingConfig(BaseModel):
    """Where log records go: stdout, stderr, discard, or a file path."""

    model_config = ConfigDict(frozen=True)

    destination: str = "stderr"
    verbose: bool = False


class QuoteConfig(BaseModel):
    """Root configuration for quotefetch."""

    model_config = ConfigDict(frozen=True)

    fetch: FetchConfig = FetchConfig()
    yahoo: YahooConfig = YahooConfig()
    tiingo: TiingoConfig = TiingoConfig()
    gdax: GdaxConfig = GdaxConfig()
    nasdaq: NasdaqConfig = NasdaqConfig()
    logging: LoggingConfig = LoggingConfig()


def load_config(
    config_path: str | None = None,
    env_prefix: str = "QUOTEFETCH_",
) -> QuoteConfig:
    """Load configuration from environment + YAML file + defaults.

    Resolution order (highest priority first):
    1. Environment variables (QUOTEFETCH_TIINGO__TOKEN, etc.)
    2. YAML file at config_path
    3. Built-in defaults

    Nested keys use double-underscore in env vars:
        QUOTEFETCH_FETCH__REQUEST_DELAY_MS=250  ->  fetch.request_delay_ms = 250
    """
    try:
        yaml_path = _resolve_config_path(config_path, env_prefix)
        base: dict = {}
        if yaml_path is not None:
            base = _load_yaml(yaml_path)

        merged = _merge_env_vars(base, env_prefix)
        return QuoteConfig.model_validate(merged)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _resolve_config_path(explicit: str | None, env_prefix: str) -> Path | None:
    """Determine config file path."""
    if explicit is not None:
        p = Path(explicit)
        if not p.exists():
            raise ConfigError(
                f"Config file not found: {explicit}",
                context={"field": "config_path", "value": explicit},
            )
        return p

    env_var = f"{env_prefix}CONFIG"
    env_path = os.environ.get(env_var)
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ConfigError(
                f"Config file from {env_var} not found: {env_path}",
                context={"field": env_var, "value": env_path},
            )
        return p

    default = Path("quotefetch.yml")
    if default.exists():
        return default

    return None


def _load_yaml(path: Path) -> dict:
    """Load and parse YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}",
            context={"field": "config_file", "value": str(path)},
        )
    return data


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Overlay environment variables onto a copy of the base config dict.

    Double-underscore separates nesting levels.
    Values are auto-cast: "true"/"false" -> bool, numeric strings -> int/float.
    """
    result = {k: dict(v) if isinstance(v, dict) else v for k, v in base.items()}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = [p.lower() for p in key[len(prefix):].split("__")]
        if parts == ["config"]:
            continue

        target = result
        for part in parts[:-1]:
            node = target.get(part)
            if not isinstance(node, dict):
                node = {}
                target[part] = node
            target = node
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
