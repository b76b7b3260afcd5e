import os

from .config import DEFAULT_CORS_HEADERS, DEFAULT_CORS_METHODS, Config

JWT_SECRET = "test-jwt-secret-0123456789abcdef0123"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "qr_attendance_test"),
}
POOL_CONFIG = {"max_open": 2, "max_idle": 1, "max_lifetime_seconds": 60}

APP_HOST = "127.0.0.1"
APP_PORT = 2754
CORS = {
    "allow_origins": ["*"],
    "allow_methods": DEFAULT_CORS_METHODS,
    "allow_headers": DEFAULT_CORS_HEADERS,
    "expose_headers": [],
    "allow_credentials": False,
    "max_age_seconds": 12 * 3600,
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

ANALYTICS_TIMEOUT_MS = Config.ANALYTICS_TIMEOUT_MS
MUTATION_TIMEOUT_MS = Config.MUTATION_TIMEOUT_MS

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

ADMIN_EMAIL = ""
ADMIN_PASSWORD = ""
