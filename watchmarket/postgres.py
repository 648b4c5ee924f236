"""Storage of rates and tickers in PostgreSQL."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, TypeVar

from watchmarket.db_models import Rate, ShowOption, Ticker, TickerQuery

T = TypeVar("T")

_RATES_INSERT = (
    "INSERT INTO rates(updated_at,created_at,currency,percent_change24h,provider,"
    "rate,last_updated,show_option) VALUES {values} "
    "ON CONFLICT ON CONSTRAINT rates_pkey DO UPDATE SET rate = excluded.rate, "
    "percent_change24h = excluded.percent_change24h, updated_at = excluded.updated_at, "
    "last_updated = excluded.last_updated"
)

_TICKERS_INSERT = (
    "INSERT INTO tickers(updated_at,created_at,id,coin,coin_name,coin_type,token_id,"
    "change24h,currency,provider,value,last_updated,volume,market_cap,show_option) "
    "VALUES {values} "
    "ON CONFLICT ON CONSTRAINT tickers_pkey DO UPDATE SET id = excluded.id, "
    "value = excluded.value, change24h = excluded.change24h, "
    "updated_at = excluded.updated_at, last_updated = excluded.last_updated, "
    "volume = excluded.volume, market_cap = excluded.market_cap"
)

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS rates ("
    "updated_at timestamp with time zone, "
    "created_at timestamp with time zone, "
    "currency text NOT NULL, "
    "provider text NOT NULL, "
    "percent_change24h double precision, "
    "rate double precision, "
    "show_option integer, "
    "last_updated timestamp with time zone, "
    "CONSTRAINT rates_pkey PRIMARY KEY (currency, provider))",
    "CREATE INDEX IF NOT EXISTS idx_rates_currency ON rates(currency)",
    "CREATE TABLE IF NOT EXISTS tickers ("
    "updated_at timestamp with time zone, "
    "created_at timestamp with time zone, "
    "id text, "
    "coin bigint NOT NULL, "
    "coin_name text NOT NULL, "
    "coin_type text NOT NULL, "
    "token_id text NOT NULL, "
    "currency text NOT NULL, "
    "provider text NOT NULL, "
    "change24h double precision, "
    "value double precision, "
    "volume double precision, "
    "market_cap double precision, "
    "show_option integer, "
    "last_updated timestamp with time zone, "
    "CONSTRAINT tickers_pkey PRIMARY KEY "
    "(coin, coin_name, coin_type, token_id, currency, provider))",
    "CREATE INDEX IF NOT EXISTS idx_tickers_id ON tickers(id)",
    "CREATE INDEX IF NOT EXISTS idx_tickers_coin ON tickers(coin)",
    "CREATE INDEX IF NOT EXISTS idx_tickers_token_id ON tickers(token_id)",
)

_RATE_SELECT = (
    "SELECT currency, provider, percent_change24h, rate, show_option, "
    "last_updated, created_at, updated_at FROM rates"
)

_TICKER_SELECT = (
    "SELECT id, coin, coin_name, coin_type, token_id, currency, provider, "
    "change24h, value, volume, market_cap, show_option, last_updated, "
    "created_at, updated_at FROM tickers"
)


class Database(ABC):
    """Storage of rates and tickers."""

    @abstractmethod
    def get_rates(self, currency: str) -> list[Rate]: ...

    @abstractmethod
    def get_all_rates(self) -> list[Rate]: ...

    @abstractmethod
    def add_rates(self, rates: Iterable[Rate], batch_limit: int) -> None: ...

    @abstractmethod
    def add_tickers(self, tickers: Iterable[Ticker], batch_limit: int) -> None: ...

    @abstractmethod
    def get_tickers(self, coin: int, token_id: str) -> list[Ticker]: ...

    @abstractmethod
    def get_all_tickers(self) -> list[Ticker]: ...

    @abstractmethod
    def get_tickers_by_queries(self, queries: Iterable[TickerQuery]) -> list[Ticker]: ...


def normalize_rates(rates: Iterable[Rate]) -> list[Rate]:
    """Drop rates whose currency and provider repeat an earlier one."""
    unique: dict[str, Rate] = {}
    for rate in rates:
        unique.setdefault(rate.key(), rate)
    return list(unique.values())


def normalize_tickers(tickers: Iterable[Ticker]) -> list[Ticker]:
    """Drop tickers whose primary key repeats an earlier one."""
    unique: dict[str, Ticker] = {}
    for ticker in tickers:
        unique.setdefault(ticker.key(), ticker)
    return list(unique.values())


def to_batches(items: Sequence[T], size: int) -> list[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    if size < 1:
        raise ValueError("batch size must be positive")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def _placeholders(count: int) -> str:
    return "(" + ", ".join(["%s"] * count) + ")"


def build_rates_insert(rates: Sequence[Rate], now: datetime) -> tuple[str, list[Any]]:
    """Statement and parameters that upsert ``rates`` in one round trip."""
    if not rates:
        raise ValueError("no rates to insert")
    params: list[Any] = []
    for rate in rates:
        params += [
            now,
            now,
            rate.currency,
            rate.percent_change_24h,
            rate.provider,
            rate.rate,
            rate.last_updated,
            int(rate.show_option),
        ]
    values = ",".join([_placeholders(8)] * len(rates))
    return _RATES_INSERT.format(values=values), params


def build_tickers_insert(
    tickers: Sequence[Ticker], now: datetime
) -> tuple[str, list[Any]]:
    """Statement and parameters that upsert ``tickers`` in one round trip."""
    if not tickers:
        raise ValueError("no tickers to insert")
    params: list[Any] = []
    for ticker in tickers:
        params += [
            now,
            now,
            ticker.id,
            ticker.coin,
            ticker.coin_name,
            ticker.coin_type,
            ticker.token_id,
            ticker.change_24h,
            ticker.currency,
            ticker.provider,
            ticker.value,
            ticker.last_updated,
            ticker.volume,
            ticker.market_cap,
            int(ticker.show_option),
        ]
    values = ",".join([_placeholders(15)] * len(tickers))
    return _TICKERS_INSERT.format(values=values), params


def _rate_from_row(row: Sequence[Any]) -> Rate:
    currency, provider, change, rate, show, last, created, updated = row
    return Rate(
        currency=currency,
        provider=provider,
        percent_change_24h=float(change or 0.0),
        rate=float(rate or 0.0),
        show_option=ShowOption(show or 0),
        last_updated=last,
        created_at=created,
        updated_at=updated,
    )


def _ticker_from_row(row: Sequence[Any]) -> Ticker:
    (
        ticker_id,
        coin,
        coin_name,
        coin_type,
        token_id,
        currency,
        provider,
        change,
        value,
        volume,
        market_cap,
        show,
        last,
        created,
        updated,
    ) = row
    return Ticker(
        id=ticker_id or "",
        coin=int(coin),
        coin_name=coin_name,
        coin_type=coin_type,
        token_id=token_id,
        currency=currency,
        provider=provider,
        change_24h=float(change or 0.0),
        value=float(value or 0.0),
        volume=float(volume or 0.0),
        market_cap=float(market_cap or 0.0),
        show_option=ShowOption(show or 0),
        last_updated=last,
        created_at=created,
        updated_at=updated,
    )


class PostgresDatabase(Database):
    """Database on a DB-API connection to PostgreSQL (``%s`` parameters)."""

    def __init__(self, connection: Any, migrate: bool = True):
        self._connection = connection
        if migrate:
            for statement in _SCHEMA:
                self._write(statement)

    def _write(self, sql: str, params: Sequence[Any] = ()) -> None:
        with closing(self._connection.cursor()) as cursor:
            try:
                cursor.execute(sql, list(params))
            except Exception:
                self._connection.rollback()
                raise
        self._connection.commit()

    def _fetch(self, sql: str, params: Sequence[Any] = ()) -> list[Sequence[Any]]:
        with closing(self._connection.cursor()) as cursor:
            cursor.execute(sql, list(params))
            return list(cursor.fetchall())

    def add_rates(self, rates: Iterable[Rate], batch_limit: int) -> None:
        for batch in to_batches(normalize_rates(rates), batch_limit):
            self._write(*build_rates_insert(batch, datetime.now(timezone.utc)))

    def get_rates(self, currency: str) -> list[Rate]:
        rows = self._fetch(_RATE_SELECT + " WHERE currency = %s", [currency])
        return [_rate_from_row(row) for row in rows]

    def get_all_rates(self) -> list[Rate]:
        return [_rate_from_row(row) for row in self._fetch(_RATE_SELECT)]

    def add_tickers(self, tickers: Iterable[Ticker], batch_limit: int) -> None:
        for batch in to_batches(normalize_tickers(tickers), batch_limit):
            self._write(*build_tickers_insert(batch, datetime.now(timezone.utc)))

    def get_tickers(self, coin: int, token_id: str) -> list[Ticker]:
        rows = self._fetch(
            _TICKER_SELECT + " WHERE coin = %s AND token_id = %s", [coin, token_id]
        )
        return [_ticker_from_row(row) for row in rows]

    def get_all_tickers(self) -> list[Ticker]:
        return [_ticker_from_row(row) for row in self._fetch(_TICKER_SELECT)]

    def get_tickers_by_queries(self, queries: Iterable[TickerQuery]) -> list[Ticker]:
        """Tickers matching any of ``queries``; all tickers when there are none."""
        conditions: list[str] = []
        params: list[Any] = []
        for query in queries:
            conditions.append("(coin = %s AND token_id = %s)")
            params += [query.coin, query.token_id]
        sql = _TICKER_SELECT
        if conditions:
            sql += " WHERE " + " OR ".join(conditions)
        return [_ticker_from_row(row) for row in self._fetch(sql, params)]

    def ping(self) -> None:
        """Raise if the server does not answer."""
        self._fetch("SELECT 1")