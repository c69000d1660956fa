import sqlite3

import pytest

from goldk.models import (
    ApiKey,
    DingTalkMarkdown,
    DingTalkMessage,
    DingTalkText,
    KlineData,
    MonitorConfig,
    MonitorStatus,
    Order,
    Signal,
    TradingSignal,
)


def _monitor_payload(**overrides):
    payload = {
        "symbol": "BTC_USDT",
        "interval_type": "1m",
        "frequency": 60,
        "history_hours": 24,
        "shadow_ratio": 2.0,
        "main_shadow_body_ratio": 3,
        "volume_multiplier": 1.5,
        "order_size": 10.0,
        "risk_reward_ratio": 2.0,
        "enable_auto_trading": False,
        "enable_dingtalk": True,
        "trade_direction": "both",
        "is_active": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    yield conn
    conn.close()


def test_api_key_defaults():
    key = ApiKey()
    assert key.id == 0
    assert key.name == ""
    assert key.webhook_url is None
    assert key.is_active is False


def test_api_key_from_sqlite_row(connection):
    connection.execute(
        "CREATE TABLE api_keys (id INTEGER, name TEXT, api_key TEXT, secret_key TEXT,"
        " webhook_url TEXT, cookie TEXT, contracts TEXT, is_active BOOLEAN,"
        " created_at INTEGER, updated_at INTEGER)"
    )
    connection.execute(
        "INSERT INTO api_keys VALUES (1, 'main', 'placeholder', 'secret', NULL, 'token', NULL, 1, 5, 6)"
    )
    row = connection.execute("SELECT * FROM api_keys").fetchone()
    key = ApiKey.from_row(row)
    assert key.id == 1
    assert key.name == "main"
    assert key.api_key == "placeholder"
    assert key.secret_key == "secret"
    assert key.webhook_url is None
    assert key.cookie == "token"
    assert key.is_active is True
    assert key.updated_at == 6


def test_api_key_to_dict_roundtrip():
    key = ApiKey(id=3, name="n", api_key="placeholder", secret_key="secret", is_active=True)
    data = key.to_dict()
    assert data["name"] == "n"
    assert ApiKey.from_row(data) == key


def test_signal_from_row_with_null_avg_volume():
    row = {
        "id": 1, "symbol": "ETH_USDT", "timestamp": 100, "open_price": 1, "high_price": 2,
        "low_price": 0.5, "close_price": 1.5, "volume": 10, "interval_type": "5m",
        "candle_type": "bull", "shadow_type": "lower", "body_length": 0.5,
        "main_shadow_length": 0.5, "shadow_ratio": 1.0, "volume_multiplier": 2.0,
        "avg_volume": None, "created_at": 200,
    }
    signal = Signal.from_row(row)
    assert signal.avg_volume is None
    assert isinstance(signal.open_price, float) and signal.open_price == 1.0
    assert signal.to_dict()["candle_type"] == "bull"


def test_signal_from_row_null_required_column_raises():
    row = {name: 1 for name in Signal.__dataclass_fields__}
    row["symbol"] = None
    with pytest.raises(ValueError):
        Signal.from_row(row)


def test_order_from_row_missing_column_raises():
    with pytest.raises(ValueError):
        Order.from_row({"id": 1})


def test_order_roundtrip():
    order = Order(1, "BTC_USDT", "buy", 1.0, 100.0, 110.0, 95.0, 2.0, None, 10, 11)
    assert Order.from_row(order.to_dict()) == order


def test_monitor_config_from_dict_fills_optional_fields():
    config = MonitorConfig.from_dict(_monitor_payload())
    assert config.id is None
    assert config.created_at is None
    assert config.main_shadow_body_ratio == 3.0
    assert config.enable_dingtalk is True


def test_monitor_config_dict_roundtrip():
    config = MonitorConfig.from_dict(_monitor_payload(id=7, created_at=1, updated_at=2))
    assert MonitorConfig.from_dict(config.to_dict()) == config


def test_monitor_config_missing_field_raises():
    payload = _monitor_payload()
    del payload["symbol"]
    with pytest.raises(ValueError):
        MonitorConfig.from_dict(payload)


@pytest.mark.parametrize(
    "override",
    [
        {"frequency": "60"},
        {"frequency": 1.5},
        {"enable_auto_trading": 1},
        {"shadow_ratio": True},
        {"symbol": 5},
    ],
)
def test_monitor_config_wrong_type_raises(override):
    with pytest.raises(ValueError):
        MonitorConfig.from_dict(_monitor_payload(**override))


def test_monitor_config_from_row_converts_integers_to_bool():
    row = _monitor_payload(id=1, created_at=3, updated_at=4, enable_auto_trading=0, is_active=1)
    config = MonitorConfig.from_row(row)
    assert config.enable_auto_trading is False
    assert config.is_active is True


def test_kline_to_dict():
    kline = KlineData(timestamp=1, open=1.0, high=2.0, low=0.5, close=1.5, volume=3.0)
    assert kline.to_dict() == {
        "timestamp": 1, "open": 1.0, "high": 2.0, "low": 0.5, "close": 1.5, "volume": 3.0,
    }


def test_monitor_status_to_dict():
    status = MonitorStatus(True, ["BTC_USDT"], None, 1, 2, 3)
    data = status.to_dict()
    assert data["active_symbols"] == ["BTC_USDT"]
    assert data["last_check"] is None
    assert data["total_contracts"] == 3


def test_trading_signal_to_dict():
    signal = TradingSignal("BTC_USDT", 1, "long", 100.0, 95.0, 110.0, "high", "why")
    assert signal.to_dict()["signal_type"] == "long"
    assert signal.to_dict()["reason"] == "why"


def test_dingtalk_text_message_to_dict():
    message = DingTalkMessage(msgtype="text", text=DingTalkText(content="hi"))
    assert message.to_dict() == {"msgtype": "text", "text": {"content": "hi"}, "markdown": None}


def test_dingtalk_markdown_message_to_dict():
    message = DingTalkMessage(msgtype="markdown", markdown=DingTalkMarkdown(title="t", text="x"))
    assert message.to_dict() == {
        "msgtype": "markdown", "text": None, "markdown": {"title": "t", "text": "x"},
    }