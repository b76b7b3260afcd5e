from __future__ import annotations

import logging
import math
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from mysql.connector import errorcode
from mysql.connector import errors as mysql_errors

from ..core.exceptions import AlreadyExistsError, StoreError, StoreUnavailableError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

_DUPLICATE_KEY_RE = re.compile(r"for key '([^']+)'")


def translate_error(exc: mysql_errors.Error) -> StoreError:
    """Map a connector error onto the persistence error kinds."""

    if isinstance(exc, mysql_errors.IntegrityError) and exc.errno == errorcode.ER_DUP_ENTRY:
        match = _DUPLICATE_KEY_RE.search(exc.msg or "")
        constraint = match.group(1) if match else "unique"
        # MySQL 8 prefixes the key with its table name.
        return AlreadyExistsError(constraint.rsplit(".", 1)[-1])
    if isinstance(exc, (mysql_errors.InterfaceError, mysql_errors.OperationalError, mysql_errors.PoolError)):
        return StoreUnavailableError("database is unavailable")
    return StoreError("database operation failed")


def _apply_deadline(cur, timeout_ms: Optional[int]) -> None:
    if not timeout_ms:
        return
    cur.execute("SET SESSION MAX_EXECUTION_TIME = %s", (int(timeout_ms),))
    cur.execute("SET SESSION innodb_lock_wait_timeout = %s", (max(1, math.ceil(timeout_ms / 1000)),))


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    timeout_ms: Optional[int] = None,
) -> Iterator[tuple[Any, Any]]:
    """Yield ``(conn, cur)``; commit on success, roll back and translate on error."""

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            _apply_deadline(cur, timeout_ms)
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql_errors.Error as exc:
        _safe_rollback(conn)
        raise translate_error(exc) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


@contextmanager
def db_transaction(
    conn_factory: DatabaseConnection,
    *,
    timeout_ms: Optional[int] = None,
) -> Iterator[tuple[Any, Any]]:
    """Explicit SERIALIZABLE transaction for multi-statement writes."""

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=True)
        try:
            _apply_deadline(cur, timeout_ms)
            conn.start_transaction(isolation_level="SERIALIZABLE")
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql_errors.Error as exc:
        _safe_rollback(conn)
        raise translate_error(exc) from exc
    except Exception:
        _safe_rollback(conn)
        raise
    finally:
        conn.close()


def _safe_rollback(conn) -> None:
    try:
        conn.rollback()
    except mysql_errors.Error:
        # Connection already gone; the server discards the transaction.
        logger.debug("Rollback skipped on a broken connection", exc_info=True)


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def scalar(cur, default: Any = 0) -> Any:
    """First column of the first row, or ``default`` for NULL/no row."""

    row = cur.fetchone()
    if not row:
        return default
    value = next(iter(row.values())) if isinstance(row, dict) else row[0]
    return default if value is None else value
