"""Client for the Gate futures REST API with HMAC-SHA512 request signing."""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from collections.abc import Callable
from decimal import Decimal
from typing import Any
from urllib.parse import urlencode

import requests

from goldk.models import KlineData

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.gateio.ws/api/v4"
ORDER_TEXT = "goldk-client"


class GateError(Exception):
    """Raised when a request to the exchange cannot be made or fails."""


def _format_price(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _parse_price(value: Any) -> float | None:
    if not isinstance(value, str) or not value or value != value.strip() or "_" in value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _is_integer(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_kline(item: Any) -> KlineData:
    if not isinstance(item, dict):
        raise GateError("Invalid kline format")
    timestamp = item.get("t")
    if not _is_integer(timestamp):
        raise GateError("Invalid timestamp")
    volume = item.get("v")
    if not _is_number(volume):
        raise GateError("Invalid volume")
    prices = {}
    for key, label in (("c", "close"), ("h", "high"), ("l", "low"), ("o", "open")):
        price = _parse_price(item.get(key))
        if price is None:
            raise GateError(f"Invalid {label} price")
        prices[label] = price
    return KlineData(
        timestamp=timestamp,
        open=prices["open"],
        high=prices["high"],
        low=prices["low"],
        close=prices["close"],
        volume=float(volume),
    )


class GateService:
    """Signed access to candlesticks, contracts and orders."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url
        self.session = session if session is not None else requests.Session()
        self._clock = clock
        self.api_key: str | None = None
        self.secret_key: str | None = None
        self.cookie: str | None = None
        self.contracts: str | None = None

    def update_credentials(self, api_key: str, secret_key: str) -> None:
        self.api_key = api_key
        self.secret_key = secret_key

    def set_cookie(self, cookie: str) -> None:
        self.cookie = cookie

    def set_contracts(self, contracts: str) -> None:
        self.contracts = contracts

    def has_credentials(self) -> bool:
        return self.api_key is not None and self.secret_key is not None

    def generate_signature(
        self, method: str, url_path: str, query_string: str, body: str, timestamp: int
    ) -> str:
        """Return the hex HMAC-SHA512 signature for a request."""
        if self.secret_key is None:
            raise GateError("Secret key not set")
        body_hash = hashlib.sha512(body.encode("utf-8")).hexdigest()
        string_to_sign = "\n".join(
            [method.upper(), url_path, query_string, body_hash, str(timestamp)]
        )
        log.debug("String to sign: %s", string_to_sign)
        return hmac.new(
            self.secret_key.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha512
        ).hexdigest()

    def _request(self, method: str, url_path: str, query_string: str = "", body: str = "") -> Any:
        timestamp = int(self._clock())
        url = f"{self.base_url}{url_path}"
        if query_string:
            url = f"{url}?{query_string}"
        log.debug("Request URL: %s", url)
        if not self.has_credentials():
            raise GateError("API credentials not configured")
        signature = self.generate_signature(method, url_path, query_string, body, timestamp)
        headers = {
            "KEY": self.api_key,
            "Timestamp": str(timestamp),
            "SIGN": signature,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            response = self.session.request(
                method, url, headers=headers, data=body.encode("utf-8") if body else None
            )
        except requests.RequestException as exc:
            raise GateError(f"request failed: {exc}") from exc
        text = response.text
        log.debug("Response status: %s", response.status_code)
        log.debug("Response body: %s", text)
        if not 200 <= response.status_code < 300:
            status = f"{response.status_code} {response.reason or ''}".strip()
            raise GateError(f"API request failed: {status} - {text}")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise GateError(f"invalid JSON response: {exc}") from exc

    def get_kline_data(
        self, symbol: str, interval: str, limit: int, settle: str = "usdt"
    ) -> list[KlineData]:
        """Fetch candlesticks for a futures contract."""
        query_string = urlencode(
            [("contract", symbol), ("interval", interval), ("limit", str(limit))]
        )
        data = self._request("GET", f"/futures/{settle}/candlesticks", query_string)
        if not isinstance(data, list):
            raise GateError("Invalid response format")
        return [_parse_kline(item) for item in data]

    def get_contracts(self, settle: str = "usdt") -> list[Any]:
        """Fetch the list of futures contracts for a settlement currency."""
        data = self._request("GET", f"/futures/{settle}/contracts")
        if not isinstance(data, list):
            raise GateError("Invalid response format")
        return data

    def place_order(
        self,
        symbol: str,
        side: str,
        size: float,
        price: float | None = None,
        settle: str = "usdt",
    ) -> Any:
        """Place a futures order; without a price it is an immediate-or-cancel market order."""
        magnitude = abs(float(size))
        order: dict[str, Any] = {
            "contract": symbol,
            "size": magnitude if side == "buy" else -magnitude,
            "text": ORDER_TEXT,
        }
        if price is not None:
            order["price"] = _format_price(price)
            order["tif"] = "gtc"
        else:
            order["price"] = "0"
            order["tif"] = "ioc"
        body = json.dumps(order, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
        return self._request("POST", f"/futures/{settle}/orders", body=body)