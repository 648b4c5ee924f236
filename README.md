# watchmarket

Building blocks for a market data service: the data types for tickers, rates,
charts and coin information, configuration loading, caches on Redis and in
memory, PostgreSQL storage of rates and tickers, a client for coin info
documents, and helpers for a Flask HTTP layer.

## Modules

- `watchmarket.models`: the public data types (`Ticker`, `Price`, `Rate`,
  `Chart`, `ChartPrice`, `CoinDetails`, `Info`, `SocialLink`, `CoinType`), the
  errors `MarketError`, `NotFoundError`, `BadRequestError` and `InternalError`,
  and helpers for asset ids, durations and value checks. `Ticker`, `Chart` and
  `Info` convert to and from their JSON form with `to_dict` / `from_dict`.
- `watchmarket.db_models`: the stored shapes of rates and tickers
  (`Rate`, `Ticker`, `TickerQuery`, `ShowOption`); `key()` gives a row's
  identity.
- `watchmarket.config`: `load_config` reads a YAML file into a
  `Configuration`; `parse_duration` turns `"5m"`, `"72h"` or `"1h30m"` into a
  `timedelta`.
- `watchmarket.redis_store`: `RedisStore`, a key/value wrapper over Redis that
  raises `KeyNotFoundError` for missing keys.
- `watchmarket.cache`: the `CacheProvider` interface, `generate_key`, and
  `MemoryCache`, an in-process cache whose entries never expire.
- `watchmarket.redis_cache`: `RedisCache`, a Redis-backed cache that also
  keeps entries valid for a time interval (`CachedInterval`), and `CacheError`.
- `watchmarket.postgres`: the `Database` interface and `PostgresDatabase`,
  which stores rates and tickers with de-duplicated, batched upserts.
- `watchmarket.assets`: `AssetsClient`, which fetches `info.json` documents
  for coins and tokens over HTTP.
- `watchmarket.web`: `cache_control`, `error_response`, `status_for_error`
  and `remove_duplicates`.

## Asset ids

```python
from watchmarket.models import build_id, parse_id

build_id(714, "TWT-8C2")      # "c714_tTWT-8C2"
build_id(60, "")              # "c60"

parse_id("c714_tTWT-8C2")     # (714, "TWT-8C2")
parse_id("tTWT-8C2_c714")     # (714, "TWT-8C2")
parse_id("c714")              # (714, "")
parse_id("tTWT-8C2")          # raises BadRequestError("bad ID")
```

## Other helpers

```python
from datetime import timedelta
from watchmarket.models import (
    duration_to_unix, is_fiat_rate, truncate_with_precision, unix_to_duration,
)

is_fiat_rate("USD")                  # True
is_fiat_rate("BTC")                  # False
truncate_with_precision(6.111, 2)    # 6.11
unix_to_duration(60)                 # timedelta(minutes=1)
duration_to_unix(timedelta(seconds=10))  # 10
```

## Configuration

```python
from watchmarket.config import load_config

config = load_config("config.yml")   # defaults to ./config.yml
config.storage.redis.url
config.rest_api.tickers.cache_control  # a timedelta
```

A non-empty environment variable named after a setting's key path, upper case
with underscores between the parts, overrides the file: for example
`STORAGE_REDIS_URL` for `storage.redis.url` or `WORKER_BATCH_LIMIT` for
`worker.batch_limit`.

## Caching

```python
from datetime import timedelta
from watchmarket.redis_store import RedisStore
from watchmarket.redis_cache import RedisCache

store = RedisStore.connect("redis://localhost:6379")
store.set("greeting", b"hello", timedelta(seconds=60))
store.get("greeting")          # b"hello"
store.is_available()           # True

cache = RedisCache(store, timedelta(minutes=15))
cache.set_with_time("charts", b"...", 0)
cache.get_with_time("charts", 100)   # data of the interval covering 100
```

`MemoryCache` and `RedisCache` share the `CacheProvider` interface: `get`,
`set`, `get_with_time`, `set_with_time`, `generate_key` and `len()`. Keys from
`generate_key` are the URL-safe base64 form of the SHA-1 digest of the text.
`MemoryCache` does not keep timed entries: `get_with_time` always returns
`None`.

## PostgreSQL storage

`PostgresDatabase` takes an open DB-API connection that uses `%s` parameters
and, unless `migrate=False`, creates the `rates` and `tickers` tables. No
database driver is installed with this package; bring your own connection.

## Coin info

```python
from watchmarket.assets import AssetsClient

client = AssetsClient("https://assets.example.com/blockchains", {60: "ethereum"})
info = client.get_coin_info(60)      # GET .../ethereum/info/info.json
```

## What this package does not do

It has no command to run and no HTTP server with routes; `watchmarket.web`
only provides helpers for Flask views. It does not fetch prices, rates or
charts from market providers, and has no scheduled worker that keeps storage
up to date.