from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.qr_attendance.qr_attendance.core.logging_config import configure_logging
from src.qr_attendance.qr_attendance.database.bootstrap import apply_schema, ensure_admin_account, list_tables
from src.qr_attendance.qr_attendance.database.connection import DBConfig


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    target = DBConfig.from_dict(settings.DB_CONFIG)

    schema_path = REPO_ROOT / "database" / "schema.sql"
    apply_schema(target, schema_path=schema_path)
    if settings.ADMIN_EMAIL and settings.ADMIN_PASSWORD:
        ensure_admin_account(target, email=settings.ADMIN_EMAIL, password=settings.ADMIN_PASSWORD)

    tables = list_tables(target)
    print(f"OK: Applied schema.sql -> {target.describe()} (tables={len(tables)})")


if __name__ == "__main__":
    main()
