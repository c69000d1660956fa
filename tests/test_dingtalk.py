import json

import pytest
import responses

from goldk.dingtalk import (
    TEST_MESSAGE,
    DingTalkError,
    DingTalkService,
    format_signal_alert,
    format_trading_signal,
)
from goldk.models import Signal, TradingSignal

WEBHOOK = "https://hooks.example.com/robot/send"


def make_signal(**overrides):
    values = dict(
        id=1,
        symbol="BTC_USDT",
        timestamp=1700000000,
        open_price=100.0,
        high_price=110.0,
        low_price=90.0,
        close_price=105.0,
        volume=12345.9,
        interval_type="5m",
        candle_type="bull",
        shadow_type="lower",
        body_length=5.0,
        main_shadow_length=10.0,
        shadow_ratio=2.0,
        volume_multiplier=3.0,
        avg_volume=None,
        created_at=1700000000,
    )
    values.update(overrides)
    return Signal(**values)


def make_trading_signal(**overrides):
    values = dict(
        symbol="BTC_USDT",
        timestamp=1700000000,
        signal_type="long",
        entry_price=100.0,
        stop_loss=90.0,
        take_profit=120.0,
        confidence="high",
        reason="long lower shadow",
    )
    values.update(overrides)
    return TradingSignal(**values)


def test_signal_alert_title_and_frame():
    title, text = format_signal_alert(make_signal())
    assert title == "🚨 K线信号报警 - BTC_USDT"
    assert text.startswith("\n# " + title + "\n---\n")
    assert text.endswith("投资决策\n" + " " * 12)


def test_signal_alert_candle_and_shadow_text():
    _, bull_lower = format_signal_alert(make_signal())
    _, bear_upper = format_signal_alert(make_signal(candle_type="bear", shadow_type="upper"))
    assert "- **K线类型**: 阳线下影线" in bull_lower
    assert "- **K线类型**: 阴线上影线" in bear_upper


def test_signal_alert_volume_truncated_to_integer():
    _, text = format_signal_alert(make_signal())
    assert "- **成交量**: 12345\n" in text


def test_signal_alert_negative_volume_saturates_at_zero():
    _, text = format_signal_alert(make_signal(volume=-5.0))
    assert "- **成交量**: 0\n" in text


def test_signal_alert_without_average_volume_uses_one():
    _, text = format_signal_alert(make_signal(avg_volume=None))
    assert "- **成交量倍数**: 1.00x  \n" in text


def test_signal_alert_includes_symbol_interval_and_timestamp():
    _, text = format_signal_alert(make_signal(symbol="ETH_USDT", interval_type="1h"))
    assert "- **交易对**: ETH_USDT\n" in text
    assert "- **周期**: 1h\n" in text
    assert "- **时间**: 1700000000\n" in text


def test_signal_alert_zero_body_gives_infinite_multiple():
    _, text = format_signal_alert(make_signal(body_length=0.0))
    assert "- **影/实体倍数**: infx  " in text


def test_trading_signal_long():
    title, text = format_trading_signal(make_trading_signal())
    assert title == "💡 交易信号 - BTC_USDT 📈"
    assert "- **方向**: 做多 📈" in text
    assert "- **风险收益比**: 1:2.0\n" in text
    assert "\nlong lower shadow\n" in text


def test_trading_signal_short():
    title, text = format_trading_signal(make_trading_signal(signal_type="short"))
    assert title.endswith("📉")
    assert "- **方向**: 做空 📉" in text
    assert "- **信心等级**: high\n" in text


def test_webhook_flag():
    service = DingTalkService()
    assert service.has_webhook() is False
    service.set_webhook_url(WEBHOOK)
    assert service.has_webhook() is True


def test_send_without_webhook_raises():
    with pytest.raises(DingTalkError, match="Webhook URL not configured"):
        DingTalkService().send_text_message("hello")


def test_send_text_message_posts_json():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, json={"errcode": 0, "errmsg": "ok"})
        DingTalkService(WEBHOOK).send_text_message("hello")
        assert len(rsps.calls) == 1
        request = rsps.calls[0].request
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.body) == {
        "msgtype": "text",
        "text": {"content": "hello"},
        "markdown": None,
    }


def test_send_signal_alert_posts_markdown():
    signal = make_signal()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, json={"errcode": 0})
        DingTalkService(WEBHOOK).send_signal_alert(signal)
        body = json.loads(rsps.calls[0].request.body)
    title, text = format_signal_alert(signal)
    assert body["msgtype"] == "markdown"
    assert body["text"] is None
    assert body["markdown"] == {"title": title, "text": text}


def test_send_trading_signal_posts_markdown():
    trading_signal = make_trading_signal()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, json={"errcode": 0})
        DingTalkService(WEBHOOK).send_trading_signal(trading_signal)
        body = json.loads(rsps.calls[0].request.body)
    title, _ = format_trading_signal(trading_signal)
    assert body["markdown"]["title"] == title


def test_connection_sends_test_text():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, json={"errcode": 0})
        DingTalkService(WEBHOOK).test_connection()
        body = json.loads(rsps.calls[0].request.body)
    assert body["text"]["content"] == TEST_MESSAGE
    assert "如果您收到此消息" in body["text"]["content"]


def test_nonzero_errcode_raises_with_message():
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST, WEBHOOK, json={"errcode": 310000, "errmsg": "keywords not in content"}
        )
        with pytest.raises(DingTalkError, match="keywords not in content"):
            DingTalkService(WEBHOOK).send_text_message("hello")


def test_nonzero_errcode_without_message():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, json={"errcode": 1})
        with pytest.raises(DingTalkError, match="Unknown error"):
            DingTalkService(WEBHOOK).send_text_message("hello")


def test_http_failure_raises():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, body="boom", status=500)
        with pytest.raises(DingTalkError, match="DingTalk API request failed: 500.* - boom"):
            DingTalkService(WEBHOOK).send_text_message("hello")


def test_invalid_json_response_raises():
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, WEBHOOK, body="not json", status=200)
        with pytest.raises(DingTalkError):
            DingTalkService(WEBHOOK).send_text_message("hello")