import os

from .config import Config, cors_settings

JWT_SECRET = os.getenv("JWT_SECRET", "dev-jwt-secret-change-me-0123456789abcdef")

DB_CONFIG = Config.db_config()
POOL_CONFIG = Config.pool_config()

APP_HOST = Config.APP_HOST
APP_PORT = Config.APP_PORT
CORS = cors_settings()

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

ANALYTICS_TIMEOUT_MS = Config.ANALYTICS_TIMEOUT_MS
MUTATION_TIMEOUT_MS = Config.MUTATION_TIMEOUT_MS

# Apply schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

ADMIN_EMAIL = Config.ADMIN_EMAIL
ADMIN_PASSWORD = Config.ADMIN_PASSWORD
