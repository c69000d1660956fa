"""Command-line entry point."""

from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from goldk import web
from goldk.config import CONFIG_ENV, ConfigError, load_config
from goldk.logsetup import init_logging

log = logging.getLogger(__name__)

DEFAULT_CONFIG = "app.toml"


def _version() -> str:
    try:
        return version("goldk")
    except PackageNotFoundError:
        return "0.1.0"


def _find_dotenv() -> Path | None:
    directory = Path.cwd()
    for candidate in (directory, *directory.parents):
        path = candidate / ".env"
        if path.is_file():
            return path
    return None


def _load_dotenv() -> None:
    """Load KEY=VALUE lines from the nearest .env file without overriding the environment."""
    path = _find_dotenv()
    if path is None:
        return
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        os.environ.setdefault(key, value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="goldk", description="Gold K line")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {_version()}")
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG, help="configuration file")
    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")
    commands.add_parser("web", help="start the web server")
    return parser


def main(argv: list[str] | None = None) -> int:
    _load_dotenv()
    init_logging()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        config.validate()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    os.environ[CONFIG_ENV] = args.config
    log.info("Configuration loaded successfully, config: %r", config)

    if args.command == "web":
        log.info("Starting web server...")
        try:
            web.start(config.database_url)
        except (sqlite3.Error, OSError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())