from datetime import datetime, timezone

import pytest

from watchmarket.db_models import Rate, ShowOption, Ticker, TickerQuery
from watchmarket.postgres import (
    PostgresDatabase,
    build_rates_insert,
    build_tickers_insert,
    normalize_rates,
    normalize_tickers,
    to_batches,
)

NOW = datetime(2020, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeCursor:
    def __init__(self, connection):
        self.connection = connection

    def execute(self, sql, params=()):
        self.connection.statements.append((sql, list(params)))
        if self.connection.fail:
            raise RuntimeError("boom")

    def fetchall(self):
        return list(self.connection.rows)

    def close(self):
        self.connection.closed += 1


class FakeConnection:
    def __init__(self, rows=(), fail=False):
        self.statements = []
        self.rows = list(rows)
        self.fail = fail
        self.commits = 0
        self.rollbacks = 0
        self.closed = 0

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


def ticker(value, provider="60", change=None):
    return Ticker(
        coin=int(value),
        coin_name=str(value),
        coin_type=str(value),
        token_id=str(value),
        change_24h=value if change is None else change,
        currency=str(value),
        provider=provider,
        value=value,
    )


def test_normalize_rates_drops_duplicates():
    rates = [
        Rate(rate=10, currency="10", provider="10", percent_change_24h=10),
        Rate(rate=20, currency="20", provider="20", percent_change_24h=20),
        Rate(rate=10, currency="10", provider="10", percent_change_24h=10),
        Rate(rate=20, currency="20", provider="20", percent_change_24h=20),
    ]
    result = normalize_rates(rates)
    assert len(result) == 2
    assert result[0] != result[1]


def test_normalize_rates_keeps_first():
    rates = [
        Rate(rate=10, currency="10", provider="10", percent_change_24h=10),
        Rate(rate=100, currency="10", provider="10", percent_change_24h=100),
    ]
    result = normalize_rates(rates)
    assert len(result) == 1
    assert result[0].rate == 10.0
    assert result[0].percent_change_24h == 10.0


def test_normalize_tickers_drops_duplicates():
    result = normalize_tickers([ticker(60), ticker(70), ticker(60), ticker(60)])
    assert len(result) == 2
    assert result[0] != result[1]


def test_normalize_tickers_keeps_first():
    second = ticker(60)
    second.change_24h = 100
    second.value = 100
    result = normalize_tickers([ticker(60), second])
    assert len(result) == 1
    assert result[0].coin == 60
    assert result[0].change_24h == 60.0
    assert result[0].value == 60.0


def test_to_batches_splits_evenly_with_remainder():
    assert to_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert to_batches([1, 2], 3000) == [[1, 2]]
    assert to_batches([], 5) == []


def test_to_batches_rejects_zero_size():
    with pytest.raises(ValueError):
        to_batches([1], 0)


def test_build_rates_insert():
    rates = [
        Rate(currency="EUR", provider="fixer", rate=0.9, percent_change_24h=1.5),
        Rate(currency="RUB", provider="fixer", rate=70, show_option=ShowOption.NEVER_SHOW),
    ]
    sql, params = build_rates_insert(rates, NOW)
    assert sql.startswith("INSERT INTO rates(")
    assert sql.count("(%s, %s, %s, %s, %s, %s, %s, %s)") == 2
    assert "ON CONFLICT ON CONSTRAINT rates_pkey" in sql
    assert params[:8] == [NOW, NOW, "EUR", 1.5, "fixer", 0.9, None, 0]
    assert params[8:] == [NOW, NOW, "RUB", 0.0, "fixer", 70, None, 2]


def test_build_tickers_insert():
    item = ticker(60)
    item.id = "c60"
    sql, params = build_tickers_insert([item], NOW)
    assert "ON CONFLICT ON CONSTRAINT tickers_pkey" in sql
    assert sql.count("%s") == 15
    assert params == [
        NOW, NOW, "c60", 60, "60", "60", "60", 60, "60", "60", 60, None, 0.0, 0.0, 0,
    ]


def test_build_insert_rejects_empty():
    with pytest.raises(ValueError):
        build_rates_insert([], NOW)
    with pytest.raises(ValueError):
        build_tickers_insert([], NOW)


def test_constructor_creates_tables():
    connection = FakeConnection()
    PostgresDatabase(connection)
    statements = [sql for sql, _ in connection.statements]
    assert any("CREATE TABLE IF NOT EXISTS rates" in sql for sql in statements)
    assert any("CONSTRAINT tickers_pkey" in sql for sql in statements)


def test_add_rates_writes_batches_of_unique_rates():
    connection = FakeConnection()
    database = PostgresDatabase(connection, migrate=False)
    rates = [Rate(currency=str(n), provider="p", rate=n) for n in range(5)]
    database.add_rates(rates + rates[:2], 2)
    assert len(connection.statements) == 3
    assert connection.commits == 3
    assert [len(params) for _, params in connection.statements] == [16, 16, 8]


def test_add_tickers_rolls_back_and_raises_on_failure():
    connection = FakeConnection(fail=True)
    database = PostgresDatabase(connection, migrate=False)
    with pytest.raises(RuntimeError):
        database.add_tickers([ticker(60)], 3000)
    assert connection.rollbacks == 1
    assert connection.commits == 0


def test_get_rates_maps_rows():
    connection = FakeConnection(rows=[("USD", "fixer", 1.0, 2.0, 1, NOW, NOW, NOW)])
    database = PostgresDatabase(connection, migrate=False)
    result = database.get_rates("USD")
    assert result == [
        Rate(
            currency="USD",
            provider="fixer",
            percent_change_24h=1.0,
            rate=2.0,
            show_option=ShowOption.ALWAYS_SHOW,
            last_updated=NOW,
            created_at=NOW,
            updated_at=NOW,
        )
    ]
    sql, params = connection.statements[0]
    assert sql.endswith("WHERE currency = %s")
    assert params == ["USD"]


def test_get_tickers_maps_rows():
    row = ("c60", 60, "ETH", "coin", "", "USD", "cmc", 1.0, 200.0, 3.0, 4.0, 0, NOW, None, None)
    connection = FakeConnection(rows=[row])
    database = PostgresDatabase(connection, migrate=False)
    result = database.get_tickers(60, "")
    assert len(result) == 1
    assert result[0].id == "c60"
    assert result[0].value == 200.0
    assert result[0].market_cap == 4.0
    assert connection.statements[0][1] == [60, ""]


def test_get_tickers_by_queries_builds_or_conditions():
    connection = FakeConnection()
    database = PostgresDatabase(connection, migrate=False)
    result = database.get_tickers_by_queries(
        [TickerQuery(coin=60, token_id=""), TickerQuery(coin=714, token_id="TWT-8C2")]
    )
    assert result == []
    sql, params = connection.statements[0]
    assert sql.endswith(
        "WHERE (coin = %s AND token_id = %s) OR (coin = %s AND token_id = %s)"
    )
    assert params == [60, "", 714, "TWT-8C2"]


def test_get_tickers_by_queries_without_queries_selects_all():
    connection = FakeConnection()
    database = PostgresDatabase(connection, migrate=False)
    database.get_tickers_by_queries([])
    sql, params = connection.statements[0]
    assert "WHERE" not in sql
    assert params == []


def test_ping_runs_select():
    connection = FakeConnection(rows=[(1,)])
    PostgresDatabase(connection, migrate=False).ping()
    assert connection.statements == [("SELECT 1", [])]