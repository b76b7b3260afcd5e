from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import mysql.connector
from mysql.connector import errors as mysql_errors
from mysql.connector import pooling

from ..core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# mysql.connector.pooling refuses pools larger than this.
MAX_POOL_SIZE = pooling.CNX_POOL_MAXSIZE


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "qr_attendance")),
        )

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


@dataclass(frozen=True)
class PoolConfig:
    max_open: int = 10
    max_idle: int = 5
    max_lifetime_seconds: float = 3600.0
    checkout_wait_seconds: float = 10.0

    @classmethod
    def from_dict(cls, pool_config: Optional[dict]) -> "PoolConfig":
        pool_config = pool_config or {}
        return cls(
            max_open=int(pool_config.get("max_open", 10)),
            max_idle=int(pool_config.get("max_idle", 5)),
            max_lifetime_seconds=float(pool_config.get("max_lifetime_seconds", 3600.0)),
            checkout_wait_seconds=float(pool_config.get("checkout_wait_seconds", 10.0)),
        )


class DatabaseConnection:
    """Pooled DB connection factory shared by every repository.

    The pool is created lazily on first use and its limits are fixed from then
    on. Connections idle longer than ``max_lifetime_seconds`` are pinged and
    reconnected on checkout.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig, pool_config: Optional[PoolConfig] = None):
        self._config = config
        self._pool_config = pool_config or PoolConfig()
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._lock = threading.Lock()
        self._last_checkout: dict[int, float] = {}

    @classmethod
    def get_instance(cls, config: DBConfig, pool_config: Optional[PoolConfig] = None) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config, pool_config)
        return cls._instance

    @property
    def config(self) -> DBConfig:
        return self._config

    def _pool_size(self) -> int:
        size = max(1, self._pool_config.max_open)
        if size > MAX_POOL_SIZE:
            logger.warning("POOL_MAX_OPEN_CONN=%s exceeds connector limit, using %s", size, MAX_POOL_SIZE)
            size = MAX_POOL_SIZE
        return size

    def _get_pool(self) -> pooling.MySQLConnectionPool:
        with self._lock:
            if self._pool is None:
                try:
                    self._pool = pooling.MySQLConnectionPool(
                        pool_name="qr_attendance",
                        pool_size=self._pool_size(),
                        pool_reset_session=True,
                        host=self._config.host,
                        port=int(self._config.port),
                        user=self._config.user,
                        password=self._config.password,
                        database=self._config.database,
                        time_zone="+00:00",
                    )
                except mysql_errors.Error as exc:
                    raise StoreUnavailableError("database is unreachable") from exc
            return self._pool

    def connect(self):
        pool = self._get_pool()
        deadline = time.monotonic() + self._pool_config.checkout_wait_seconds
        while True:
            try:
                cnx = pool.get_connection()
                break
            except mysql_errors.PoolError as exc:
                if time.monotonic() >= deadline:
                    raise StoreUnavailableError("connection pool exhausted") from exc
                time.sleep(0.05)
            except mysql_errors.Error as exc:
                raise StoreUnavailableError("database is unreachable") from exc

        now = time.monotonic()
        key = id(getattr(cnx, "_cnx", cnx))
        last = self._last_checkout.get(key)
        if last is not None and now - last > self._pool_config.max_lifetime_seconds:
            try:
                cnx.ping(reconnect=True, attempts=1, delay=0)
            except mysql_errors.Error as exc:
                cnx.close()
                raise StoreUnavailableError("database is unreachable") from exc
        self._last_checkout[key] = now
        return cnx

    def ping(self, *, timeout_seconds: int = 3) -> None:
        """Open a throwaway connection with a hard connect deadline.

        Raises StoreUnavailableError when the database does not answer in time.
        """

        try:
            cnx = mysql.connector.connect(
                host=self._config.host,
                port=int(self._config.port),
                user=self._config.user,
                password=self._config.password,
                database=self._config.database,
                connection_timeout=int(timeout_seconds),
            )
        except mysql_errors.Error as exc:
            raise StoreUnavailableError(f"database ping failed: {exc.msg or exc}") from exc
        try:
            cnx.ping(reconnect=False)
        finally:
            cnx.close()

    def close(self) -> None:
        """Drop idle pooled connections. Checked-out ones close on release."""

        with self._lock:
            pool = self._pool
            self._pool = None
            self._last_checkout.clear()
        if pool is None:
            return
        try:
            # No public drain call exists; present in mysql-connector-python 8.0 through 9.x.
            closed = pool._remove_connections()
        except mysql_errors.Error:
            logger.warning("Failed to close pooled connections", exc_info=True)
            return
        logger.info("Closed %s pooled database connections", closed)
