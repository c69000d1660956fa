"""DingTalk robot notifications for candle signals and trading signals."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

import requests

from goldk.models import (
    DingTalkMarkdown,
    DingTalkMessage,
    DingTalkText,
    Signal,
    TradingSignal,
)

log = logging.getLogger(__name__)

TEST_MESSAGE = "🔔 Gate.io K线监控工具测试消息\n\n如果您收到此消息，说明钉钉机器人配置成功！"
_TRAILER = " " * 12
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_U64_MAX = 2**64 - 1


class DingTalkError(Exception):
    """Raised when a DingTalk message cannot be delivered."""


def _format_timestamp(timestamp: int) -> str:
    return str(timestamp)


def _fixed(value: float, digits: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return f"{value:.{digits}f}"


def _divide(numerator: float, denominator: float) -> float:
    """Floating-point division that yields inf or NaN instead of raising."""
    try:
        return numerator / denominator
    except ZeroDivisionError:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    whole = math.trunc(value)
    if abs(value - whole) >= 0.5:
        whole += 1 if value > 0 else -1
    return math.copysign(float(whole), value)


def _saturating_u64(value: float) -> int:
    if math.isnan(value) or value <= 0:
        return 0
    if value >= 2.0**64:
        return _U64_MAX
    return int(value)


def _status_text(response: requests.Response) -> str:
    return f"{response.status_code} {response.reason or ''}".strip()


def format_signal_alert(signal: Signal) -> tuple[str, str]:
    """Return the title and markdown body of an alert for a detected candle signal."""
    candle_text = "阳线" if signal.candle_type == "bull" else "阴线"
    shadow_text = "上影线" if signal.shadow_type == "upper" else "下影线"

    shadow_multiple = (
        _round_half_away(_divide(signal.main_shadow_length, signal.body_length) * 100.0) / 100.0
    )
    if signal.avg_volume is not None:
        volume_multiple = (
            _round_half_away(_divide(signal.volume, signal.avg_volume) * 100.0) / 100.0
        )
    else:
        volume_multiple = 1.0

    title = f"🚨 K线信号报警 - {signal.symbol}"
    lines = [
        "",
        f"# {title}",
        "---",
        f"- **交易对**: {signal.symbol}",
        f"- **时间**: {_format_timestamp(signal.timestamp)}",
        f"- **周期**: {signal.interval_type}",
        f"- **价格**: {_fixed(signal.close_price, 4)}",
        "---",
        "## 📊 信号详情",
        f"- **K线类型**: {candle_text}{shadow_text}",
        f"- **影/实体倍数**: {_fixed(shadow_multiple, 2)}x  ",
        f"- **成交量倍数**: {_fixed(volume_multiple, 2)}x  ",
        "---",
        "## 📈 技术指标",
        f"- **开盘价**: {_fixed(signal.open_price, 4)}",
        f"- **最高价**: {_fixed(signal.high_price, 4)}  ",
        f"- **最低价**: {_fixed(signal.low_price, 4)}",
        f"- **收盘价**: {_fixed(signal.close_price, 4)}",
        f"- **成交量**: {_saturating_u64(signal.volume)}",
        "---",
        "> ⚠️ 此为系统自动监控信号，仅供参考，请结合其他指标做出投资决策",
        _TRAILER,
    ]
    return title, "\n".join(lines)


def format_trading_signal(trading_signal: TradingSignal) -> tuple[str, str]:
    """Return the title and markdown body of a trading suggestion."""
    is_long = trading_signal.signal_type == "long"
    direction_emoji = "📈" if is_long else "📉"
    direction_text = "做多" if is_long else "做空"

    risk_reward = _divide(
        abs(trading_signal.take_profit - trading_signal.entry_price),
        abs(trading_signal.entry_price - trading_signal.stop_loss),
    )

    title = f"💡 交易信号 - {trading_signal.symbol} {direction_emoji}"
    lines = [
        "",
        f"# {title}",
        "---",
        f"- **交易对**: {trading_signal.symbol}",
        f"- **时间**: {_format_timestamp(trading_signal.timestamp)}",
        f"- **方向**: {direction_text} {direction_emoji}",
        f"- **入场价**: {_fixed(trading_signal.entry_price, 4)}",
        f"- **止损价**: {_fixed(trading_signal.stop_loss, 4)}",
        f"- **止盈价**: {_fixed(trading_signal.take_profit, 4)}",
        f"- **风险收益比**: 1:{_fixed(risk_reward, 1)}",
        f"- **信心等级**: {trading_signal.confidence}",
        "---",
        "## 💭 分析理由",
        trading_signal.reason,
        "---",
        "> 🎯 请根据自身风险承受能力谨慎操作",
        _TRAILER,
    ]
    return title, "\n".join(lines)


class DingTalkService:
    """Sends messages to a DingTalk robot webhook."""

    def __init__(
        self, webhook_url: str | None = None, session: requests.Session | None = None
    ) -> None:
        self.webhook_url = webhook_url
        self.session = session if session is not None else requests.Session()

    def set_webhook_url(self, url: str) -> None:
        self.webhook_url = url

    def has_webhook(self) -> bool:
        return self.webhook_url is not None

    def send_text_message(self, content: str) -> None:
        self._send(DingTalkMessage(msgtype="text", text=DingTalkText(content=content)))

    def send_markdown_message(self, title: str, text: str) -> None:
        self._send(
            DingTalkMessage(msgtype="markdown", markdown=DingTalkMarkdown(title=title, text=text))
        )

    def send_signal_alert(self, signal: Signal) -> None:
        title, text = format_signal_alert(signal)
        self.send_markdown_message(title, text)

    def send_trading_signal(self, trading_signal: TradingSignal) -> None:
        title, text = format_trading_signal(trading_signal)
        self.send_markdown_message(title, text)

    def test_connection(self) -> None:
        """Send a fixed text message to check the webhook works."""
        self.send_text_message(TEST_MESSAGE)

    def _send(self, message: DingTalkMessage) -> None:
        if self.webhook_url is None:
            raise DingTalkError("Webhook URL not configured")
        payload = message.to_dict()
        log.debug("Sending DingTalk message: %r", payload)
        try:
            response = self.session.post(
                self.webhook_url,
                data=json.dumps(payload, ensure_ascii=False).encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except requests.RequestException as exc:
            raise DingTalkError(f"request failed: {exc}") from exc

        text = response.text
        log.debug("DingTalk response status: %s", response.status_code)
        log.debug("DingTalk response body: %s", text)

        if not 200 <= response.status_code < 300:
            raise DingTalkError(
                f"DingTalk API request failed: {_status_text(response)} - {text}"
            )
        try:
            result: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DingTalkError(f"invalid JSON response: {exc}") from exc

        if isinstance(result, dict):
            errcode = result.get("errcode")
            if (
                isinstance(errcode, int)
                and not isinstance(errcode, bool)
                and _I64_MIN <= errcode <= _I64_MAX
                and errcode != 0
            ):
                errmsg = result.get("errmsg")
                if not isinstance(errmsg, str):
                    errmsg = "Unknown error"
                raise DingTalkError(f"DingTalk message send failed: {errmsg}")

        log.debug("DingTalk message sent successfully")