"""Service configuration loaded from a YAML file with environment overrides."""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_NAME = "config.yml"

_UNIT_MICROSECONDS = {
    "ns": 0.001,
    "us": 1.0,
    "µs": 1.0,
    "μs": 1.0,
    "ms": 1_000.0,
    "s": 1_000_000.0,
    "m": 60_000_000.0,
    "h": 3_600_000_000.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_TRUE = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE = {"", "0", "f", "F", "false", "FALSE", "False"}


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``"1h30m"``, ``"300ms"`` or ``"-2s"``."""
    rest = text
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    sign = -1 if rest[0] == "-" else 1
    if rest[0] in "+-":
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNIT_MICROSECONDS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total)


def _key(name: str) -> Any:
    return field(default="", metadata={"key": name})


@dataclass
class _Priority:
    charts: list[str] = field(default_factory=list)
    coin_info: list[str] = field(default_factory=list)
    tickers: list[str] = field(default_factory=list)
    rates: list[str] = field(default_factory=list)


@dataclass
class _BinanceDex:
    api: str = ""


@dataclass
class _Coinmarketcap:
    api: str = ""
    key: str = ""
    currency: str = ""
    web_api: str = ""
    widget_api: str = ""


@dataclass
class _Coingecko:
    api: str = ""
    currency: str = ""


@dataclass
class _Fixer:
    api: str = ""
    currency: str = ""
    key: str = ""


@dataclass
class _Markets:
    priority: _Priority = field(default_factory=_Priority)
    binancedex: _BinanceDex = field(default_factory=_BinanceDex)
    coinmarketcap: _Coinmarketcap = field(default_factory=_Coinmarketcap)
    coingecko: _Coingecko = field(default_factory=_Coingecko)
    fixer: _Fixer = field(default_factory=_Fixer)
    assets: str = ""


@dataclass
class _Redis:
    url: str = ""


@dataclass
class _Postgres:
    url: str = ""
    logs: bool = False
    apm: bool = False


@dataclass
class _Storage:
    redis: _Redis = field(default_factory=_Redis)
    postgres: _Postgres = field(default_factory=_Postgres)


@dataclass
class _Worker:
    tickers: str = ""
    rates: str = ""
    batch_limit: int = 0


@dataclass
class _TickersApi:
    respectable_market_cap: float = 0.0
    respectable_volume: float = 0.0
    respectable_update_time: timedelta = timedelta(0)
    cache_control: timedelta = timedelta(0)


@dataclass
class _CacheControl:
    cache_control: timedelta = timedelta(0)


@dataclass
class _UpdateTime:
    tickers: str = _key("memory_cache_tickers")
    rates: str = _key("memory_cache_rates")


@dataclass
class _RestApi:
    mode: str = ""
    port: str = ""
    tickers: _TickersApi = field(default_factory=_TickersApi)
    charts: _CacheControl = field(default_factory=_CacheControl)
    info: _CacheControl = field(default_factory=_CacheControl)
    cache: timedelta = timedelta(0)
    request_limit: int = 0
    use_memory_cache: bool = False
    update_time: _UpdateTime = field(default_factory=_UpdateTime)


@dataclass
class Configuration:
    markets: _Markets = field(default_factory=_Markets)
    storage: _Storage = field(default_factory=_Storage)
    worker: _Worker = field(default_factory=_Worker)
    rest_api: _RestApi = field(default_factory=_RestApi)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value)
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"cannot read {value!r} as a boolean")


def _to_int(value: Any) -> int:
    if isinstance(value, (bool, float)):
        return int(value)
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 0) if text else 0


def _to_float(value: Any) -> float:
    if isinstance(value, str) and not value:
        return 0.0
    return float(value)


def _to_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _to_duration(value: Any) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return timedelta(microseconds=value / 1000)
    return parse_duration(str(value))


def _to_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [_to_str(item) for item in value]
    text = _to_str(value)
    return text.split(",") if text else []


_CONVERTERS = {
    bool: _to_bool,
    int: _to_int,
    float: _to_float,
    str: _to_str,
    timedelta: _to_duration,
}


def _coerce(value: Any, kind: Any) -> Any:
    if kind == list[str]:
        return _to_list(value)
    return _CONVERTERS[kind](value)


def _lower_keys(data: Any) -> Any:
    if isinstance(data, Mapping):
        return {str(key).lower(): _lower_keys(value) for key, value in data.items()}
    return data


def _build(cls: type, data: Mapping, path: tuple[str, ...], environ: Mapping) -> Any:
    values = {}
    for item in fields(cls):
        key = item.metadata.get("key", item.name)
        kind = item.type
        dotted = path + (key,)
        raw = data.get(key)
        if isinstance(kind, type) and is_dataclass(kind):
            nested = raw if isinstance(raw, Mapping) else {}
            values[item.name] = _build(kind, nested, dotted, environ)
            continue
        env_value = environ.get("_".join(dotted).upper())
        if env_value:
            raw = env_value
        if raw is None:
            continue
        try:
            values[item.name] = _coerce(raw, kind)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid value for {'.'.join(dotted)}: {exc}") from exc
    return cls(**values)


def load_config(path: str | os.PathLike | None = None) -> Configuration:
    """Read the YAML configuration at ``path`` (default ``./config.yml``).

    A non-empty environment variable named after a setting's dotted key, upper
    case with dots as underscores (``WORKER_BATCH_LIMIT``), overrides the file.
    """
    config_path = Path(path or DEFAULT_CONFIG_NAME).resolve()
    with config_path.open(encoding="utf-8") as stream:
        document = yaml.safe_load(stream)
    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ValueError(f"{config_path}: configuration must be a mapping")
    return _build(Configuration, _lower_keys(document), (), os.environ)