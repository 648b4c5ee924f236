from watchmarket.db_models import Rate, ShowOption, Ticker, TickerQuery


def test_rate_key_ignores_values():
    first = Rate(currency="EUR", provider="fixer", rate=1.0, percent_change_24h=1.0)
    second = Rate(currency="EUR", provider="fixer", rate=9.0, percent_change_24h=5.0)
    assert first.key() == second.key()


def test_rate_key_depends_on_provider():
    assert Rate("EUR", "fixer").key() != Rate("EUR", "coingecko").key()


def test_rate_key_joins_currency_and_provider():
    rate = Rate("EUR", "fixer")
    assert rate.key().startswith("EUR")
    assert rate.key().endswith("fixer")


def test_ticker_key_ignores_values():
    first = Ticker(coin=60, coin_name="60", token_id="60", provider="60", value=60)
    second = Ticker(coin=60, coin_name="60", token_id="60", provider="60", value=100)
    assert first.key() == second.key()


def test_ticker_key_depends_on_identity_fields():
    base = Ticker(coin=60, currency="USD", provider="a")
    assert base.key() != Ticker(coin=70, currency="USD", provider="a").key()
    assert base.key() != Ticker(coin=60, currency="USD", provider="b").key()
    assert base.key().startswith("60")


def test_default_show_option():
    assert Rate("USD", "fixer").show_option is ShowOption.DEFAULT
    assert Ticker().show_option == 0


def test_ticker_query_is_hashable_value():
    queries = {TickerQuery(60, "a"), TickerQuery(60, "a"), TickerQuery(60, "b")}
    assert len(queries) == 2