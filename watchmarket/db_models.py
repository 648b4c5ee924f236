"""Stored records of rates and tickers."""

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum


class ShowOption(IntEnum):
    DEFAULT = 0
    ALWAYS_SHOW = 1
    NEVER_SHOW = 2


@dataclass(frozen=True)
class TickerQuery:
    coin: int
    token_id: str = ""


@dataclass
class Rate:
    currency: str
    provider: str
    rate: float = 0.0
    percent_change_24h: float = 0.0
    show_option: ShowOption = ShowOption.DEFAULT
    last_updated: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def key(self) -> str:
        """Identity of the row: currency followed by provider."""
        return self.currency + self.provider


@dataclass
class Ticker:
    coin: int = 0
    coin_name: str = ""
    coin_type: str = ""
    token_id: str = ""
    currency: str = ""
    provider: str = ""
    id: str = ""
    change_24h: float = 0.0
    value: float = 0.0
    volume: float = 0.0
    market_cap: float = 0.0
    show_option: ShowOption = ShowOption.DEFAULT
    last_updated: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def key(self) -> str:
        """Identity of the row built from its primary key columns."""
        return (
            str(self.coin)
            + self.coin_name
            + self.coin_type
            + self.token_id
            + self.currency
            + self.provider
        )