"""Records stored in the database and messages exchanged with remote services."""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields
from typing import Any, get_args


def _unwrap(annotation: Any) -> tuple[Any, bool]:
    """Return the base type of an annotation and whether it admits ``None``."""
    args = get_args(annotation)
    if args and type(None) in args:
        base = next(arg for arg in args if arg is not type(None))
        return base, True
    return annotation, False


def _field_types(cls: type) -> list[tuple[str, Any]]:
    return [(f.name, f.type) for f in fields(cls)]


def _row_mapping(row: Any) -> Mapping[str, Any]:
    if isinstance(row, Mapping):
        return row
    if hasattr(row, "keys"):
        return {key: row[key] for key in row.keys()}
    raise TypeError(f"cannot read columns from {type(row).__name__}")


def _coerce_column(name: str, annotation: Any, value: Any) -> Any:
    base, optional = _unwrap(annotation)
    if value is None:
        if optional:
            return None
        raise ValueError(f"column {name!r} is NULL")
    if base is bool:
        return bool(value)
    if base is float:
        return float(value)
    if base is int:
        return int(value)
    return value


def _check_json_value(name: str, annotation: Any, value: Any) -> Any:
    base, optional = _unwrap(annotation)
    if value is None:
        if optional:
            return None
        raise ValueError(f"field {name!r} must not be null")
    if base is bool:
        if not isinstance(value, bool):
            raise ValueError(f"field {name!r} must be a boolean")
        return value
    if base is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"field {name!r} must be an integer")
        return value
    if base is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"field {name!r} must be a number")
        return float(value)
    if base is str:
        if not isinstance(value, str):
            raise ValueError(f"field {name!r} must be a string")
        return value
    return value


def _build_from_row(cls: type, row: Any) -> Any:
    mapping = _row_mapping(row)
    values = {}
    for name, annotation in _field_types(cls):
        if name not in mapping:
            raise ValueError(f"missing column {name!r}")
        values[name] = _coerce_column(name, annotation, mapping[name])
    return cls(**values)


@dataclass
class ApiKey:
    id: int = 0
    name: str = ""
    api_key: str = ""
    secret_key: str = ""
    webhook_url: str | None = None
    cookie: str | None = None
    contracts: str | None = None
    is_active: bool = False
    created_at: int = 0
    updated_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: Any) -> "ApiKey":
        """Build the record from a database row or column mapping."""
        return _build_from_row(cls, row)


@dataclass
class Signal:
    id: int
    symbol: str
    timestamp: int
    open_price: float
    high_price: float
    low_price: float
    close_price: float
    volume: float
    interval_type: str
    candle_type: str
    shadow_type: str
    body_length: float
    main_shadow_length: float
    shadow_ratio: float
    volume_multiplier: float
    avg_volume: float | None
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: Any) -> "Signal":
        """Build the record from a database row or column mapping."""
        return _build_from_row(cls, row)


@dataclass
class Order:
    id: int
    symbol: str
    side: str
    order_size: float
    entry_price: float
    take_profit_price: float
    stop_loss_price: float
    risk_reward_ratio: float
    signal_id: int | None
    timestamp: int
    created_at: int

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: Any) -> "Order":
        """Build the record from a database row or column mapping."""
        return _build_from_row(cls, row)


@dataclass
class MonitorConfig:
    id: int | None
    symbol: str
    interval_type: str
    frequency: int
    history_hours: int
    shadow_ratio: float
    main_shadow_body_ratio: float
    volume_multiplier: float
    order_size: float
    risk_reward_ratio: float
    enable_auto_trading: bool
    enable_dingtalk: bool
    trade_direction: str
    is_active: bool
    created_at: int | None
    updated_at: int | None

    def to_dict(self) -> dict[str, Any]:
        """Return the record as a JSON-ready dictionary."""
        return asdict(self)

    @classmethod
    def from_row(cls, row: Any) -> "MonitorConfig":
        """Build the record from a database row or column mapping."""
        return _build_from_row(cls, row)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonitorConfig":
        """Build a configuration from decoded JSON, checking every field."""
        if not isinstance(data, Mapping):
            raise ValueError("monitor config must be an object")
        values = {}
        for name, annotation in _field_types(cls):
            _, optional = _unwrap(annotation)
            if name not in data:
                if optional:
                    values[name] = None
                    continue
                raise ValueError(f"missing field {name!r}")
            values[name] = _check_json_value(name, annotation, data[name])
        return cls(**values)


@dataclass
class KlineData:
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> dict[str, Any]:
        """Return the candle as a JSON-ready dictionary."""
        return asdict(self)


@dataclass
class MonitorStatus:
    is_running: bool
    active_symbols: list[str]
    last_check: int | None
    total_signals: int
    total_orders: int
    total_contracts: int

    def to_dict(self) -> dict[str, Any]:
        """Return the status as a JSON-ready dictionary."""
        return asdict(self)


@dataclass
class TradingSignal:
    symbol: str
    timestamp: int
    signal_type: str
    entry_price: float
    stop_loss: float
    take_profit: float
    confidence: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        """Return the signal as a JSON-ready dictionary."""
        return asdict(self)


@dataclass
class DingTalkText:
    content: str


@dataclass
class DingTalkMarkdown:
    title: str
    text: str


@dataclass
class DingTalkMessage:
    msgtype: str
    text: DingTalkText | None = None
    markdown: DingTalkMarkdown | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the message as a JSON-ready dictionary."""
        return asdict(self)