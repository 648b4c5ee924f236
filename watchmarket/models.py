"""Market data types and asset identifier helpers."""

import math
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping

UNKNOWN_COIN_ID = 111111
DEFAULT_PRECISION = 10
DEFAULT_CURRENCY = "USD"
DEFAULT_MAX_CHART_ITEMS = 64

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_COIN_PREFIX = "c"
_TOKEN_PREFIX = "t"
_COIN_NUMBER = re.compile(r"[+-]?\d+")
_TIMESTAMP = re.compile(
    r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})"
)

_FIAT_CURRENCIES = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND BOB
    BRL BSD BTN BWP BYN BYR BZD CAD CDF CHF CLF CLP CNY COP CRC CUC CUP CVE CZK
    DJF DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GGP GHS GIP GMD GNF GTQ GYD
    HKD HNL HRK HTG HUF IDR ILS IMP INR IQD IRR ISK JEP JMD JOD JPY KES KGS KHR
    KMF KPW KRW KWD KYD KZT LAK LBP LKR LRD LSL LTL LVL LYD MAD MDL MGA MKD MMK
    MNT MOP MRO MUR MVR MWK MXN MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK
    PHP PKR PLN PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK SGD SHP SLL SOS SRD
    STD SVC SYP SZL THB TJS TMT TND TOP TRY TTD TWD TZS UAH UGX USD UYU UZS VEF
    VND VUV WST XAF XAG XAU XCD XDR XOF XPF YER ZAR ZMK ZMW ZWL
    """.split()
)


class CoinType(str, Enum):
    """Kind of asset a ticker describes."""

    COIN = "coin"
    TOKEN = "token"


class MarketError(Exception):
    """Base class of market data errors."""

    default_message = "market error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class NotFoundError(MarketError):
    default_message = "not found"


class BadRequestError(MarketError):
    default_message = "bad request"


class InternalError(MarketError):
    default_message = "internal"


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else value


def _format_time(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if not offset:
        return text + "Z"
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(text: str) -> datetime:
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    base, fraction, zone = match.groups()
    moment = datetime.fromisoformat(base)
    if fraction:
        moment = moment.replace(microsecond=int((fraction + "000000")[:6]))
    if zone == "Z":
        tz = timezone.utc
    else:
        hours, minutes = int(zone[1:3]), int(zone[4:6])
        offset = timedelta(hours=hours, minutes=minutes)
        tz = timezone(-offset if zone[0] == "-" else offset)
    return moment.replace(tzinfo=tz)


@dataclass
class Rate:
    currency: str
    rate: float
    percent_change_24h: float = 0.0
    provider: str = ""
    timestamp: int = 0
    show_option: int = 0


@dataclass
class Price:
    change_24h: float = 0.0
    currency: str = ""
    provider: str = ""
    value: float = 0.0

    def to_dict(self) -> dict:
        data: dict = {"change_24h": self.change_24h, "currency": self.currency}
        if self.provider:
            data["provider"] = self.provider
        data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "Price":
        return cls(
            change_24h=float(data.get("change_24h", 0.0)),
            currency=data.get("currency", ""),
            provider=data.get("provider", ""),
            value=float(data.get("value", 0.0)),
        )


@dataclass
class Ticker:
    coin: int = 0
    coin_name: str = ""
    token_id: str = ""
    coin_type: CoinType | str = ""
    price: Price = field(default_factory=Price)
    last_update: datetime = ZERO_TIME
    error: str = ""
    volume: float = 0.0
    market_cap: float = 0.0
    show_option: int = 0

    def to_dict(self) -> dict:
        """Return the JSON form of the ticker."""
        data: dict = {"coin": self.coin, "coin_name": self.coin_name}
        if self.token_id:
            data["token_id"] = self.token_id
        if self.coin_type:
            data["type"] = _text(self.coin_type)
        data["price"] = self.price.to_dict()
        data["last_update"] = _format_time(self.last_update)
        if self.error:
            data["error"] = self.error
        data["volume"] = self.volume
        data["market_cap"] = self.market_cap
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "Ticker":
        raw_type = data.get("type", "")
        try:
            coin_type: CoinType | str = CoinType(raw_type)
        except ValueError:
            coin_type = raw_type
        last_update = data.get("last_update")
        return cls(
            coin=int(data.get("coin", 0)),
            coin_name=data.get("coin_name", ""),
            token_id=data.get("token_id", ""),
            coin_type=coin_type,
            price=Price.from_dict(data.get("price") or {}),
            last_update=_parse_time(last_update) if last_update else ZERO_TIME,
            error=data.get("error", ""),
            volume=float(data.get("volume", 0.0)),
            market_cap=float(data.get("market_cap", 0.0)),
        )


@dataclass
class ChartPrice:
    price: float = 0.0
    date: int = 0


@dataclass
class Chart:
    provider: str = ""
    prices: list[ChartPrice] = field(default_factory=list)
    error: str = ""

    def is_empty(self) -> bool:
        return not self.prices

    def to_dict(self) -> dict:
        data: dict = {}
        if self.provider:
            data["provider"] = self.provider
        if self.prices:
            data["prices"] = [{"price": p.price, "date": p.date} for p in self.prices]
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "Chart":
        return cls(
            provider=data.get("provider", ""),
            prices=[
                ChartPrice(price=float(p.get("price", 0.0)), date=int(p.get("date", 0)))
                for p in data.get("prices") or []
            ],
            error=data.get("error", ""),
        )


@dataclass
class SocialLink:
    name: str = ""
    url: str = ""
    handle: str = ""


_INFO_TEXT_FIELDS = (
    "name",
    "website",
    "source_code",
    "white_paper",
    "description",
    "short_description",
    "research",
    "explorer",
)


@dataclass
class Info:
    name: str = ""
    website: str = ""
    source_code: str = ""
    white_paper: str = ""
    description: str = ""
    short_description: str = ""
    research: str = ""
    explorer: str = ""
    socials: list[SocialLink] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            name: getattr(self, name) for name in _INFO_TEXT_FIELDS if getattr(self, name)
        }
        if self.socials:
            data["socials"] = [
                {"name": s.name, "url": s.url, "handle": s.handle} for s in self.socials
            ]
        return data

    @classmethod
    def from_dict(cls, data: Mapping) -> "Info":
        return cls(
            **{name: data.get(name, "") for name in _INFO_TEXT_FIELDS},
            socials=[
                SocialLink(
                    name=s.get("name", ""), url=s.get("url", ""), handle=s.get("handle", "")
                )
                for s in data.get("socials") or []
            ],
        )


@dataclass
class CoinDetails:
    provider: str = ""
    provider_url: str = ""
    vol_24: float = 0.0
    market_cap: float = 0.0
    circulating_supply: float = 0.0
    total_supply: float = 0.0
    info: Info | None = None

    def is_empty(self) -> bool:
        return self.info is None or self.info.name == ""


def truncate_with_precision(num: float, precision: int) -> float:
    """Round ``num`` half away from zero to ``precision`` decimal places."""
    scale = math.pow(10, precision)
    scaled = num * scale
    return int(scaled + math.copysign(0.5, scaled)) / scale


def unix_to_duration(unix_time: int) -> timedelta:
    return timedelta(seconds=unix_time)


def duration_to_unix(duration: timedelta) -> int:
    return int(duration.total_seconds())


def remove_first_char(text: str) -> str:
    return text[1:] if len(text) > 1 else ""


def find_coin_id(words: list[str]) -> int:
    """Return the coin number of the first word starting with ``c``."""
    for word in words:
        if word.startswith(_COIN_PREFIX):
            raw = remove_first_char(word)
            if not _COIN_NUMBER.fullmatch(raw) or int(raw) < 0:
                raise BadRequestError("bad coin")
            return int(raw)
    raise BadRequestError("no coin")


def find_token_id(words: list[str]) -> str:
    """Return the token of the first word starting with ``t``, or ``""``."""
    for word in words:
        if word.startswith(_TOKEN_PREFIX):
            return remove_first_char(word)
    return ""


def parse_id(asset_id: str) -> tuple[int, str]:
    """Split an asset id such as ``c714_tTWT-8C2`` into coin and token."""
    words = asset_id.split("_")
    try:
        coin = find_coin_id(words)
    except BadRequestError as exc:
        raise BadRequestError("bad ID") from exc
    return coin, find_token_id(words)


def build_id(coin: int, token: str) -> str:
    if token:
        return f"{_COIN_PREFIX}{coin}_{_TOKEN_PREFIX}{token}"
    return f"{_COIN_PREFIX}{coin}"


def is_respectable_value(value: float, resp_value: float) -> bool:
    return value >= resp_value


def is_suitable_update_time(last_update: datetime, max_duration: timedelta) -> bool:
    """Whether ``last_update`` lies no further back than ``max_duration``."""
    now = math.floor(time.time())
    last = math.floor(last_update.timestamp())
    if now < last:
        return True
    return now - last <= duration_to_unix(max_duration)


def is_fiat_rate(currency: str) -> bool:
    return currency in _FIAT_CURRENCIES