"""HTTP API for managing exchange keys, monitor configurations, signals and orders."""

from __future__ import annotations

import json
import logging
import os
import re
import sqlite3
import threading
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, quote

from flask import Flask, Response, abort, jsonify, request

from goldk.config import get_global_config
from goldk.gate import GateError, GateService
from goldk.models import ApiKey, MonitorConfig, Order, Signal

log = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3000

_NOW = "(CAST(strftime('%s', 'now') AS INTEGER))"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS api_keys (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    api_key TEXT NOT NULL,
    secret_key TEXT NOT NULL,
    webhook_url TEXT,
    cookie TEXT,
    contracts TEXT,
    is_active BOOLEAN NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL DEFAULT {_NOW},
    updated_at INTEGER NOT NULL DEFAULT {_NOW}
);
CREATE TABLE IF NOT EXISTS signals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    open_price REAL NOT NULL,
    high_price REAL NOT NULL,
    low_price REAL NOT NULL,
    close_price REAL NOT NULL,
    volume REAL NOT NULL,
    interval_type TEXT NOT NULL,
    candle_type TEXT NOT NULL,
    shadow_type TEXT NOT NULL,
    body_length REAL NOT NULL,
    main_shadow_length REAL NOT NULL,
    shadow_ratio REAL NOT NULL,
    volume_multiplier REAL NOT NULL,
    avg_volume REAL,
    created_at INTEGER NOT NULL DEFAULT {_NOW}
);
CREATE TABLE IF NOT EXISTS orders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    side TEXT NOT NULL,
    order_size REAL NOT NULL,
    entry_price REAL NOT NULL,
    take_profit_price REAL NOT NULL,
    stop_loss_price REAL NOT NULL,
    risk_reward_ratio REAL NOT NULL,
    signal_id INTEGER,
    timestamp INTEGER NOT NULL,
    created_at INTEGER NOT NULL DEFAULT {_NOW}
);
CREATE TABLE IF NOT EXISTS monitor_configs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    symbol TEXT NOT NULL,
    interval_type TEXT NOT NULL,
    frequency INTEGER NOT NULL,
    history_hours INTEGER NOT NULL,
    shadow_ratio REAL NOT NULL,
    main_shadow_body_ratio REAL NOT NULL,
    volume_multiplier REAL NOT NULL,
    order_size REAL NOT NULL,
    risk_reward_ratio REAL NOT NULL,
    enable_auto_trading BOOLEAN NOT NULL,
    enable_dingtalk BOOLEAN NOT NULL,
    trade_direction TEXT NOT NULL,
    is_active BOOLEAN NOT NULL,
    created_at INTEGER DEFAULT {_NOW},
    updated_at INTEGER DEFAULT {_NOW}
);
"""

_ACTIVE_KEY_SQL = "SELECT * FROM api_keys WHERE is_active = 1 LIMIT 1"
_INSERT_CONFIG_SQL = """
INSERT INTO monitor_configs (
    symbol, interval_type, frequency, history_hours, shadow_ratio,
    main_shadow_body_ratio, volume_multiplier, order_size,
    risk_reward_ratio, enable_auto_trading, enable_dingtalk,
    trade_direction, is_active
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""
_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
_DB_ERRORS = (sqlite3.Error, ValueError)


def init_schema(connection: sqlite3.Connection) -> None:
    """Create the application tables if they do not exist."""
    connection.executescript(_SCHEMA)


def _connect(database_url: str) -> sqlite3.Connection:
    """Open a SQLite database named by a ``sqlite:`` URL."""
    if database_url.startswith("sqlite://"):
        rest = database_url[len("sqlite://"):]
    elif database_url.startswith("sqlite:"):
        rest = database_url[len("sqlite:"):]
    else:
        raise ValueError(f"unsupported database URL: {database_url}")
    path, _, query = rest.partition("?")
    mode = parse_qs(query).get("mode", ["rw"])[-1]
    if path in ("", ":memory:") or mode == "memory":
        connection = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
    else:
        uri = f"file:{quote(path)}?mode={quote(mode)}"
        connection = sqlite3.connect(
            uri, uri=True, check_same_thread=False, isolation_level=None
        )
    connection.row_factory = sqlite3.Row
    return connection


@dataclass
class _SaveApiKeysRequest:
    name: str
    api_key: str
    secret_key: str
    webhook_url: str | None
    cookie: str | None


@dataclass
class _AppState:
    db: sqlite3.Connection
    gate: GateService
    db_lock: threading.RLock = field(default_factory=threading.RLock)
    gate_lock: threading.Lock = field(default_factory=threading.Lock)


def _apply_key(gate: GateService, key: ApiKey) -> None:
    gate.update_credentials(key.api_key, key.secret_key)
    if key.cookie is not None:
        gate.set_cookie(key.cookie)
    if key.contracts is not None:
        gate.set_contracts(key.contracts)


def _json_body() -> Any:
    if not request.is_json:
        abort(415)
    try:
        return json.loads(request.get_data(as_text=True))
    except ValueError:
        abort(400)


def _parse_save_request(body: Any) -> _SaveApiKeysRequest:
    if not isinstance(body, dict):
        abort(422)
    for name in ("name", "api_key", "secret_key"):
        if not isinstance(body.get(name), str):
            abort(422)
    for name in ("webhook_url", "cookie"):
        value = body.get(name)
        if value is not None and not isinstance(value, str):
            abort(422)
    return _SaveApiKeysRequest(
        name=body["name"],
        api_key=body["api_key"],
        secret_key=body["secret_key"],
        webhook_url=body.get("webhook_url"),
        cookie=body.get("cookie"),
    )


def _parse_configs(body: Any) -> list[MonitorConfig]:
    if not isinstance(body, list):
        abort(422)
    try:
        return [MonitorConfig.from_dict(item) for item in body]
    except ValueError:
        abort(422)


def _parse_id(text: str) -> int:
    if not _ID_PATTERN.fullmatch(text):
        abort(400)
    value = int(text)
    if not -(2**63) <= value < 2**63:
        abort(400)
    return value


def _server_error() -> tuple[str, int]:
    return "", 500


def _success() -> Response:
    return jsonify({"success": True})


def create_app(database_url: str, gate_service: GateService | None = None) -> Flask:
    """Build the web application backed by the database at ``database_url``."""
    connection = _connect(database_url)
    init_schema(connection)
    gate = gate_service if gate_service is not None else GateService()

    try:
        row = connection.execute(_ACTIVE_KEY_SQL).fetchone()
        active = ApiKey.from_row(row) if row is not None else None
    except _DB_ERRORS:
        active = None
    if active is not None:
        _apply_key(gate, active)
        log.info("Loaded API configuration: %s", active.name)

    state = _AppState(db=connection, gate=gate)
    app = Flask(
        __name__, static_folder=os.path.abspath("static"), static_url_path="/static"
    )
    app.extensions["goldk"] = state

    @app.after_request
    def _cors(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"
        return response

    def _fetch_all(sql: str, model: type, what: str):
        try:
            with state.db_lock:
                rows = state.db.execute(sql).fetchall()
            return jsonify([model.from_row(row).to_dict() for row in rows])
        except _DB_ERRORS as exc:
            log.warning("Failed to get %s: %s", what, exc)
            return _server_error()

    @app.get("/api/keys")
    def get_api_keys():
        return _fetch_all("SELECT * FROM api_keys ORDER BY created_at DESC", ApiKey, "api keys")

    @app.post("/api/keys")
    def save_api_keys():
        payload = _parse_save_request(_json_body())
        with state.db_lock:
            try:
                state.db.execute("DELETE FROM api_keys")
            except sqlite3.Error as exc:
                log.warning("Failed to clear api keys: %s", exc)
                return _server_error()
            try:
                state.db.execute(
                    "INSERT INTO api_keys (name, api_key, secret_key, webhook_url, cookie, is_active)"
                    " VALUES (?, ?, ?, ?, ?, 1)",
                    (
                        payload.name,
                        payload.api_key,
                        payload.secret_key,
                        payload.webhook_url,
                        payload.cookie,
                    ),
                )
            except sqlite3.Error as exc:
                log.warning("Failed to save api keys: %s", exc)
                return _server_error()
        with state.gate_lock:
            state.gate.update_credentials(payload.api_key, payload.secret_key)
            if payload.cookie is not None:
                state.gate.set_cookie(payload.cookie)
        return _success()

    @app.get("/api/keys/current")
    def get_current_api_key():
        try:
            with state.db_lock:
                row = state.db.execute(_ACTIVE_KEY_SQL).fetchone()
            return jsonify(ApiKey.from_row(row).to_dict() if row is not None else None)
        except _DB_ERRORS as exc:
            log.warning("Failed to get current api key: %s", exc)
            return _server_error()

    @app.post("/api/keys/<key_id>/activate")
    def activate_api_key(key_id: str):
        ident = _parse_id(key_id)
        with state.db_lock:
            try:
                state.db.execute("UPDATE api_keys SET is_active = 0")
            except sqlite3.Error as exc:
                log.warning("Failed to deactivate api keys: %s", exc)
                return _server_error()
            try:
                state.db.execute("UPDATE api_keys SET is_active = 1 WHERE id = ?", (ident,))
            except sqlite3.Error as exc:
                log.warning("Failed to activate api key: %s", exc)
                return _server_error()
            try:
                row = state.db.execute("SELECT * FROM api_keys WHERE id = ?", (ident,)).fetchone()
                key = ApiKey.from_row(row) if row is not None else None
            except _DB_ERRORS:
                key = None
        if key is not None:
            with state.gate_lock:
                _apply_key(state.gate, key)
        return _success()

    @app.post("/api/keys/<key_id>")
    def delete_api_key(key_id: str):
        ident = _parse_id(key_id)
        try:
            with state.db_lock:
                state.db.execute("DELETE FROM api_keys WHERE id = ?", (ident,))
        except sqlite3.Error as exc:
            log.warning("Failed to delete api key: %s", exc)
            return _server_error()
        return _success()

    @app.post("/api/contracts/fetch")
    def fetch_contracts():
        try:
            with state.db_lock:
                row = state.db.execute(_ACTIVE_KEY_SQL).fetchone()
            current = ApiKey.from_row(row) if row is not None else None
        except _DB_ERRORS as exc:
            log.warning("Failed to get current api key: %s", exc)
            return _server_error()
        if current is None:
            return jsonify({"success": False, "message": "未找到活跃的API配置"})

        try:
            with state.gate_lock:
                contracts = state.gate.get_contracts("usdt")
        except GateError as exc:
            log.warning("Failed to fetch contracts: %s", exc)
            return jsonify({"success": False, "message": f"获取合约失败: {exc}"})

        contracts_json = json.dumps(contracts, separators=(",", ":"), ensure_ascii=False)
        try:
            with state.db_lock:
                state.db.execute(
                    "UPDATE api_keys SET contracts = ? WHERE id = ?", (contracts_json, current.id)
                )
        except sqlite3.Error as exc:
            log.warning("Failed to update contracts: %s", exc)

        count = len(contracts)
        return jsonify({"success": True, "count": count, "message": f"成功获取{count}个合约"})

    @app.get("/api/signals")
    def get_signals():
        return _fetch_all(
            "SELECT * FROM signals ORDER BY timestamp DESC LIMIT 100", Signal, "signals"
        )

    @app.get("/api/orders")
    def get_orders():
        return _fetch_all(
            "SELECT * FROM orders ORDER BY timestamp DESC LIMIT 100", Order, "orders"
        )

    @app.get("/api/configs")
    def get_monitor_configs():
        return _fetch_all(
            "SELECT * FROM monitor_configs ORDER BY created_at DESC",
            MonitorConfig,
            "monitor configs",
        )

    @app.post("/api/configs")
    def save_monitor_configs():
        configs = _parse_configs(_json_body())
        with state.db_lock:
            try:
                state.db.execute("BEGIN")
            except sqlite3.Error as exc:
                log.warning("Failed to start transaction: %s", exc)
                return _server_error()
            try:
                state.db.execute("DELETE FROM monitor_configs")
                for config in configs:
                    state.db.execute(
                        _INSERT_CONFIG_SQL,
                        (
                            config.symbol,
                            config.interval_type,
                            config.frequency,
                            config.history_hours,
                            config.shadow_ratio,
                            config.main_shadow_body_ratio,
                            config.volume_multiplier,
                            config.order_size,
                            config.risk_reward_ratio,
                            config.enable_auto_trading,
                            config.enable_dingtalk,
                            config.trade_direction,
                            config.is_active,
                        ),
                    )
                state.db.execute("COMMIT")
            except sqlite3.Error as exc:
                log.warning("Failed to save monitor configs: %s", exc)
                if state.db.in_transaction:
                    state.db.execute("ROLLBACK")
                return _server_error()
        return _success()

    return app


def start(
    database_url: str | None = None, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT
) -> None:
    """Run the web server; without a URL the global configuration supplies it."""
    if database_url is None:
        database_url = get_global_config().database_url
    app = create_app(database_url)
    log.info("Server starting on http://%s:%s", host, port)
    app.run(host=host, port=port)