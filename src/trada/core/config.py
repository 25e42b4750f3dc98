"""Run configuration: YAML file, TRADA_* environment and CLI overrides."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from trada.core.exceptions import ConfigError
from trada.core.models import DataRange

_LOG_LEVELS = ("disabled", "error", "warning", "info", "debug")

CONFIG_ENV_VAR = "TRADA_CONFIG"
DEFAULT_CONFIG_FILE = "trada.yml"


class LoggingConfig(BaseModel):
    """Log level and optional log file."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    level: str = "info"
    file: str | None = None

    @field_validator("level")
    @classmethod
    def level_known(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of: {' | '.join(_LOG_LEVELS)}")
        return v


class _FetchSetup(BaseModel):
    """Settings shared by every fetching tool."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    timeout: int = 30
    max_procs: int = 4
    rate_limit: int = 5
    output_dir: str

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("timeout is set too low; must be >= 1 second")
        return v

    @field_validator("max_procs", "rate_limit")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("output_dir")
    @classmethod
    def output_dir_set(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("output_dir is not specified")
        return v


class CryptowatchConfig(_FetchSetup):
    """Crypto exchange market data API."""

    base_url: str = "https://api.cryptowat.ch"
    exchange: str
    range: DataRange = DataRange.ONE_YEAR
    output_dir: str = "./data/crypto"
    watchlists: list[str] = []

    @field_validator("exchange", "base_url")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip().rstrip("/")


class IEXConfig(_FetchSetup):
    """Equities market data API."""

    base_url: str = "https://cloud.iexapis.com/stable"
    token: str = ""
    range: DataRange = DataRange.ONE_MONTH
    output_dir: str = "./data/equities"
    watchlists: list[str] = []

    @field_validator("base_url")
    @classmethod
    def base_url_set(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("base_url is not specified")
        return v.strip().rstrip("/")

    @field_validator("range")
    @classmethod
    def range_supported(cls, v: DataRange) -> DataRange:
        if v == DataRange.MAX:
            raise ValueError("range 'max' is not supported by the equities API")
        return v


class IndexResource(BaseModel):
    """One index-membership page to scrape."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    name: str
    page_name: str
    section: int
    min_count: int = 0
    output_file: str
    merge: bool = False

    @field_validator("name", "page_name", "output_file")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("section")
    @classmethod
    def section_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("section must be >= 1")
        return v

    @field_validator("min_count")
    @classmethod
    def min_count_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("min_count must be >= 0")
        return v

    @field_validator("name")
    @classmethod
    def parser_registered(cls, v: str) -> str:
        from trada.wiki.parsers import default_registry

        registry = default_registry()
        if v not in registry:
            raise ValueError(
                f"no index parser named {v!r}; use one of: {', '.join(registry.names())}"
            )
        return v


class WikiConfig(_FetchSetup):
    """Wiki API index-membership scraping."""

    api_url: str = "https://en.wikipedia.org/w/api.php"
    output_dir: str = "./data/index"
    resources: list[IndexResource]

    @field_validator("api_url")
    @classmethod
    def api_url_set(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("api_url is not specified")
        return v.strip()

    @model_validator(mode="after")
    def resources_not_empty(self) -> WikiConfig:
        if not self.resources:
            raise ValueError("empty resources definition")
        return self


class TradaConfig(BaseModel):
    """Root configuration. Each tool requires its own section."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    logging: LoggingConfig = LoggingConfig()
    cryptowatch: CryptowatchConfig | None = None
    iex: IEXConfig | None = None
    wiki: WikiConfig | None = None

    def require(self, section: str) -> Any:
        """Return a tool section, raising ConfigError when it is absent."""
        value = getattr(self, section, None)
        if value is None:
            raise ConfigError(
                f"Config section '{section}' is missing",
                context={"field": section, "value": None},
            )
        return value


def load_config(
    config_path: str | None = None,
    env_prefix: str = "TRADA_",
    overrides: dict | None = None,
) -> TradaConfig:
    """Build the run configuration from every source.

    Later layers win:

    1. built-in model defaults
    2. YAML file (``-c``, else ``$TRADA_CONFIG``, else ``./trada.yml``)
    3. environment, e.g. ``TRADA_IEX__TOKEN=abc`` sets ``iex.token``
    4. ``overrides`` from command-line flags; ``None`` leaves a value alone

    Raises:
        ConfigError: The file is missing or malformed, or a value is invalid.
    """
    try:
        path = _find_config_file(config_path)
        layered = _read_yaml(path) if path is not None else {}
        layered = _deep_merge(layered, _env_layer(os.environ, env_prefix))
        if overrides:
            layered = _deep_merge(layered, overrides)
        return TradaConfig.model_validate(layered)
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(str(e), context={"field": "config", "value": config_path}) from e


def _find_config_file(explicit: str | None) -> Path | None:
    candidates = [
        ("-c", explicit),
        (CONFIG_ENV_VAR, os.environ.get(CONFIG_ENV_VAR)),
    ]
    for origin, value in candidates:
        if not value:
            continue
        path = Path(value)
        if not path.is_file():
            raise ConfigError(
                f"config file {value} (from {origin}) does not exist",
                context={"field": origin, "value": value},
            )
        return path

    default = Path(DEFAULT_CONFIG_FILE)
    return default if default.is_file() else None


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"config file {path} is not valid YAML: {e}",
            context={"field": "config", "value": str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"config file {path} must hold a mapping at top level, "
            f"not {type(data).__name__}",
            context={"field": "config", "value": str(path)},
        )
    return data


def _env_layer(environ: Mapping[str, str], prefix: str) -> dict:
    """Nested dict from ``{prefix}SECTION__KEY=value`` variables."""
    layer: dict = {}
    for name, raw in environ.items():
        if not name.startswith(prefix) or name == CONFIG_ENV_VAR:
            continue
        path = name[len(prefix) :].lower().split("__")
        node = layer
        for part in path[:-1]:
            node = node.setdefault(part, {})
            if not isinstance(node, dict):
                break
        else:
            node[path[-1]] = _coerce_env_value(raw)
    return layer


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge ``overlay`` onto a copy of ``base``. None values are skipped."""
    result = dict(base)
    for key, value in overlay.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = result.get(key)
            nested = _deep_merge(current if isinstance(current, dict) else {}, value)
            if nested:
                result[key] = nested
        else:
            result[key] = value
    return result


def _coerce_env_value(raw: str) -> bool | int | float | str:
    """Environment strings to bool/int/float where they look like one."""
    lowered = raw.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for kind in (int, float):
        try:
            return kind(raw)
        except ValueError:
            continue
    return raw
