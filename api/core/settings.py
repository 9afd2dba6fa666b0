"""
Environment-backed settings for the data-access layer.

Connection strings are looked up by name:
- "primary" reads DATABASE_URL
- any other name reads DATABASE_URL_<NAME> (e.g. DATABASE_URL_REPORTING)
"""

from __future__ import annotations

import os

from .errors import ConfigurationError

DEFAULT_CONNECTION_NAME = "primary"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def connection_string_key(name: str = DEFAULT_CONNECTION_NAME) -> str:
    name = (name or "").strip()
    if not name or name.lower() == DEFAULT_CONNECTION_NAME:
        return "DATABASE_URL"
    return f"DATABASE_URL_{name.upper()}"


def connection_string(name: str = DEFAULT_CONNECTION_NAME) -> str:
    key = connection_string_key(name)
    value = os.environ.get(key, "").strip()
    if not value:
        raise ConfigurationError(
            f"Connection string '{name}' is not configured. Set {key}.",
            details={"name": name, "env": key},
        )
    return value


def command_timeout() -> float | None:
    # 0 (or negative) disables the default statement timeout.
    value = _env_float("DB_COMMAND_TIMEOUT", 30.0)
    return value if value > 0 else None


def connect_timeout() -> float:
    return _env_float("DB_CONNECT_TIMEOUT", 10.0)


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "").strip()
    if not raw:
        return ["http://localhost:5173", "http://127.0.0.1:5173"]
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
