from __future__ import annotations

import importlib
import logging
from pathlib import Path
from types import ModuleType
from typing import Optional

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from config import get_settings_module

from .admin.controller import register as register_admin
from .analytics.controller import register as register_analytics
from .attendance.controller import register as register_attendance
from .common.http import REQUEST_ID_HEADER, register_error_handlers
from .container import Container, build_container
from .core.constants import DB_PING_TIMEOUT_SECONDS
from .core.logging_config import configure_logging
from .database.bootstrap import apply_schema, ensure_admin_account, ensure_database_exists, list_tables
from .database.connection import DBConfig, DatabaseConnection
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parents[3] / "database" / "schema.sql"


def load_settings() -> ModuleType:
    load_dotenv(override=False)
    return importlib.import_module(get_settings_module())


def prepare_database(settings: ModuleType) -> None:
    """Ping, migrate and seed the bootstrap admin. Any failure is fatal at startup."""

    db_config = DBConfig.from_dict(getattr(settings, "DB_CONFIG"))
    auto_init = bool(getattr(settings, "AUTO_INIT_DB", False))
    logger.info("Database target %s", db_config.describe())
    if auto_init:
        ensure_database_exists(db_config)
    DatabaseConnection(db_config).ping(timeout_seconds=DB_PING_TIMEOUT_SECONDS)

    if auto_init:
        apply_schema(db_config, schema_path=SCHEMA_PATH)
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))

    admin_email = getattr(settings, "ADMIN_EMAIL", "")
    admin_password = getattr(settings, "ADMIN_PASSWORD", "")
    if admin_email and admin_password:
        ensure_admin_account(db_config, email=admin_email, password=admin_password)


def _apply_cors(app: Flask, cors: dict) -> None:
    origins = cors.get("allow_origins", ["*"])
    # flask-cors 6 reflects the request origin unless told to send "*".
    wildcard = "*" in origins and not cors.get("allow_credentials", False)
    CORS(
        app,
        resources={r"/api/*": {"origins": origins}},
        send_wildcard=wildcard,
        methods=cors.get("allow_methods"),
        allow_headers=cors.get("allow_headers"),
        expose_headers=list(cors.get("expose_headers") or []) + [REQUEST_ID_HEADER],
        supports_credentials=bool(cors.get("allow_credentials", False)),
        max_age=cors.get("max_age_seconds"),
    )


def create_app(container: Optional[Container] = None, settings: Optional[ModuleType] = None) -> Flask:
    if settings is None:
        settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info("Starting with settings %s", getattr(settings, "__name__", "custom"))

    app = Flask(__name__)
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.json.sort_keys = False

    if container is None:
        prepare_database(settings)
        container = build_container(settings=settings)
    app.extensions["qr_attendance.container"] = container

    _apply_cors(app, getattr(settings, "CORS", {}) or {})
    register_error_handlers(app)

    register_users(app, container)
    register_attendance(app, container)
    register_analytics(app, container)
    register_admin(app, container)

    return app
