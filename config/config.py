"""Environment parsing shared by the settings modules."""

import os
import re

_DURATION_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

DEFAULT_CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]
DEFAULT_CORS_HEADERS = ["Origin", "Content-Type", "Authorization", "Accept", "X-Requested-With"]


def parse_duration(value, default_seconds):
    """Parse Go-style duration strings ("90s", "5m", "1h30m") into seconds.

    A bare number is taken as seconds.
    """
    if value is None or not str(value).strip():
        return float(default_seconds)
    text = str(value).strip().lower()
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return float(text)
    pos = 0
    total = 0.0
    for match in _DURATION_RE.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text) or pos == 0:
        raise ValueError(f"Invalid duration: {value!r}")
    return total


def env_duration(name, default_seconds):
    return parse_duration(os.getenv(name), default_seconds)


def env_list(name, default=None):
    raw = os.getenv(name, "")
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return items or list(default or [])


def env_bool(name, default=False):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name, default):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return int(default)
    return int(raw)


def parse_listen_address(value, default_port=2754):
    """":2754" -> ("0.0.0.0", 2754); "127.0.0.1:8080" -> ("127.0.0.1", 8080)."""
    text = (value or "").strip() or f":{default_port}"
    if ":" not in text:
        return "0.0.0.0", int(text)
    host, _, port = text.rpartition(":")
    return host or "0.0.0.0", int(port or default_port)


def cors_settings():
    origins = env_list("CORS_ALLOW_ORIGINS")
    allow_all = not origins or "*" in origins
    return {
        "allow_origins": ["*"] if allow_all else origins,
        "allow_methods": env_list("CORS_ALLOW_METHODS", DEFAULT_CORS_METHODS),
        "allow_headers": env_list("CORS_ALLOW_HEADERS", DEFAULT_CORS_HEADERS),
        "expose_headers": env_list("CORS_EXPOSE_HEADERS"),
        # Browsers reject credentials with a wildcard origin.
        "allow_credentials": False if allow_all else env_bool("CORS_ALLOW_CREDENTIALS", False),
        "max_age_seconds": int(env_duration("CORS_MAX_AGE", 12 * 3600)),
    }


class Config:
    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "qr_attendance")

    POOL_MAX_OPEN_CONN = env_int("POOL_MAX_OPEN_CONN", 10)
    POOL_MAX_IDLE_CONN = env_int("POOL_MAX_IDLE_CONN", 5)
    POOL_MAX_CONN_TIMEOUT = env_duration("POOL_MAX_CONN_TIMEOUT", 3600)

    APP_HOST, APP_PORT = parse_listen_address(os.environ.get("APP_PORT"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    ANALYTICS_TIMEOUT_MS = env_int("ANALYTICS_TIMEOUT_MS", 30000)
    MUTATION_TIMEOUT_MS = env_int("MUTATION_TIMEOUT_MS", 10000)

    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")

    @classmethod
    def db_config(cls):
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
        }

    @classmethod
    def pool_config(cls):
        return {
            "max_open": cls.POOL_MAX_OPEN_CONN,
            "max_idle": cls.POOL_MAX_IDLE_CONN,
            "max_lifetime_seconds": cls.POOL_MAX_CONN_TIMEOUT,
        }
