# goldk

goldk is a small toolkit around Gate.io USDT-settled futures:

- `goldk.gate.GateService` — a signed (HMAC-SHA512) client for candlesticks,
  the contract list and order placement;
- `goldk.dingtalk.DingTalkService` — pushes text and markdown messages,
  candle-signal alerts and trading suggestions to a DingTalk robot webhook;
- `goldk.web` — a Flask JSON API over a SQLite database holding API keys,
  monitor configurations, signals and orders;
- `goldk.models` — the dataclasses for those records and messages.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Configuration

The `goldk` command reads a TOML file (default `app.toml`) holding the
database location:

```toml
database_url = "sqlite:goldk.db?mode=rwc"
```

`database_url` must be a non-empty `sqlite:` (or `sqlite://`) URL. The `mode`
query parameter is passed to SQLite; without it the mode is `rw`, so the
database file must already exist — use `mode=rwc` to have it created, or
`sqlite::memory:` for an in-memory database. The tables are created on start-up
if they are missing.

After the file is loaded, its path is put into the `GOLD_K_CONFIG` environment
variable; `goldk.config.get_global_config()` reads the file named there once and
returns the same `Config` afterwards. `goldk.config.load_config(path)` and
`Config.from_toml(text)` parse a file or text directly; `Config.validate()`
checks the field constraints. Problems are raised as `goldk.config.ConfigError`.

Before anything else the command loads `KEY=VALUE` lines from the nearest
`.env` file (in the current directory or a parent), without overriding
variables already set.

### Logging

Log lines go to standard error with timestamps at UTC+8 and millisecond
precision (`goldk.logsetup.init_logging()`). The level defaults to INFO and can
be changed with `GOLD_K_LOG`, a comma-separated list of directives:

- a level on its own (`trace`, `debug`, `info`, `warn`, `error`, `off`) sets the
  default;
- `name=level` sets the level of one logger (`::` is read as `.`);
- a logger name on its own sets that logger to DEBUG.

```
GOLD_K_LOG=warn,goldk.gate=debug goldk web
```

## Running the web server

```
goldk --config app.toml web
goldk --version
```

The server listens on `http://localhost:3000`. Files in a `static` directory
under the current working directory are served at `/static`. All responses
carry permissive CORS headers. The JSON API:

| Method | Path | Purpose |
| ------ | ---- | ------- |
| GET | `/api/keys` | list stored API keys, newest first |
| POST | `/api/keys` | delete all stored keys and store a new active one |
| GET | `/api/keys/current` | the active API key, or `null` |
| POST | `/api/keys/<id>/activate` | make a key the only active one |
| POST | `/api/keys/<id>` | delete a key |
| POST | `/api/contracts/fetch` | download the USDT contract list with the active key and store it on that key |
| GET | `/api/signals` | latest 100 signals |
| GET | `/api/orders` | latest 100 orders |
| GET / POST | `/api/configs` | read, or replace in one transaction, the monitor configurations |

`POST /api/keys` takes `name`, `api_key`, `secret_key` and optional
`webhook_url` and `cookie`. Saving or activating a key also hands its
credentials (and cookie and contracts, when present) to the server's
`GateService`; the active key is loaded the same way at start-up.

Database failures are answered with status 500; malformed bodies with 400,
415 or 422; failures from the exchange are reported as
`{"success": false, "message": ...}`.

## Using the library

```python
from goldk.gate import GateService

gate = GateService()
gate.update_credentials("placeholder", "secret")
candles = gate.get_kline_data("BTC_USDT", "1h", 100, "usdt")
contracts = gate.get_contracts("usdt")
gate.place_order("BTC_USDT", "buy", 1, None, "usdt")  # immediate-or-cancel at market
```

```python
from goldk.dingtalk import DingTalkService, format_signal_alert

bot = DingTalkService()
bot.set_webhook_url("https://oapi.example.com/robot/send?access_token=token")
bot.test_connection()
```

`format_signal_alert(signal)` and `format_trading_signal(trading_signal)` return
the `(title, markdown)` pair that `send_signal_alert` and `send_trading_signal`
post.

Failures are raised as `goldk.gate.GateError`, `goldk.dingtalk.DingTalkError`
and `goldk.config.ConfigError`.

The web application can also be built directly, for instance to embed it or
test it:

```python
from goldk.web import create_app

app = create_app("sqlite:goldk.db?mode=rwc", None)
```

`goldk.web.start(database_url, host, port)` runs it; without a URL it takes
the one from the global configuration.

## What goldk does not do

- It serves no HTML pages: there is no dashboard at `/`, `/keys` or
  `/monitor`, only the JSON API and the static directory.
- It does not watch the market. Nothing in the package detects candlestick
  patterns, runs a monitoring loop, writes signals or orders to the database,
  or places orders on its own; there are no endpoints to start, stop or query
  a monitor. The signal and order tables are read by the API but filled only
  by whatever else writes to the database.