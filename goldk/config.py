"""Application configuration read from a TOML file."""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

CONFIG_ENV = "GOLD_K_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration is missing, unreadable or invalid."""


@dataclass(frozen=True)
class Config:
    database_url: str

    @classmethod
    def from_toml(cls, text: str) -> Config:
        """Parse a configuration from TOML text."""
        try:
            data = tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML: {exc}") from exc
        if "database_url" not in data:
            raise ConfigError("missing field `database_url`")
        database_url = data["database_url"]
        if not isinstance(database_url, str):
            raise ConfigError("`database_url` must be a string")
        return cls(database_url=database_url)

    def validate(self) -> None:
        """Check the field constraints; raise ConfigError if one fails."""
        if len(self.database_url) < 1:
            raise ConfigError("database_url: length must be at least 1")


def load_config(path: str | os.PathLike[str]) -> Config:
    """Read and parse the configuration file at ``path``."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read config file {path}: {exc}") from exc
    return Config.from_toml(text)


_global_config: Config | None = None
_global_lock = threading.Lock()


def get_global_config() -> Config:
    """Return the process-wide configuration named by GOLD_K_CONFIG, loading it once."""
    global _global_config
    path = os.environ.get(CONFIG_ENV)
    if path is None:
        raise ConfigError(f"{CONFIG_ENV} is not set")
    log.debug("Loading global config from %s", path)
    with _global_lock:
        if _global_config is None:
            _global_config = load_config(path)
        return _global_config