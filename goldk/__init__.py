"""Gate.io futures client, DingTalk alerts and a SQLite-backed JSON API for keys, monitor settings, signals and orders."""

__version__ = "0.1.0"