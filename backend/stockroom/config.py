# backend/stockroom/config.py
from __future__ import annotations
import os
import re
from datetime import timedelta


_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Token signing. No default: the app refuses to start without a secret.
    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", "")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_ACCESS_EXPIRES_IN = os.environ.get("JWT_ACCESS_EXPIRES_IN", "1h")
    JWT_REFRESH_EXPIRES_IN = os.environ.get("JWT_REFRESH_EXPIRES_IN", "7d")

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:3001,http://localhost:3002",
        ).split(",")
        if origin.strip()
    ]


def parse_duration(value) -> timedelta:
    """
    Parse an expiry window such as "30s", "15m", "1h", "7d" or a bare number
    of seconds.

    Raises ValueError for anything else.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _DURATION_UNITS[unit])


def validate_config(config) -> None:
    """
    Fail fast on configuration the app cannot run with.

    Called once from create_app after all overrides are applied.
    """
    secret = config.get("JWT_SECRET_KEY")
    if not secret or not str(secret).strip():
        raise RuntimeError("JWT_SECRET_KEY must be set to a non-empty value")

    for key in ("JWT_ACCESS_EXPIRES_IN", "JWT_REFRESH_EXPIRES_IN"):
        try:
            window = parse_duration(config.get(key))
        except ValueError as exc:
            raise RuntimeError(f"{key} is not a valid duration") from exc
        if window.total_seconds() <= 0:
            raise RuntimeError(f"{key} must be positive")
