import os

from .config import Config, cors_settings

JWT_SECRET = os.getenv("JWT_SECRET", "")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET must be set in production")

DB_CONFIG = Config.db_config()
POOL_CONFIG = Config.pool_config()

APP_HOST = Config.APP_HOST
APP_PORT = Config.APP_PORT
CORS = cors_settings()

DEBUG = False
LOG_LEVEL = Config.LOG_LEVEL

ANALYTICS_TIMEOUT_MS = Config.ANALYTICS_TIMEOUT_MS
MUTATION_TIMEOUT_MS = Config.MUTATION_TIMEOUT_MS

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

ADMIN_EMAIL = Config.ADMIN_EMAIL
ADMIN_PASSWORD = Config.ADMIN_PASSWORD
