from __future__ import annotations

import pytest
from mysql.connector import errors as mysql_errors

from src.qr_attendance.qr_attendance.database.connection import DatabaseConnection, DBConfig, PoolConfig


class IdlePool:
    def __init__(self, idle=3, error=None):
        self.idle = idle
        self.error = error
        self.drains = 0

    def _remove_connections(self):
        self.drains += 1
        if self.error is not None:
            raise self.error
        return self.idle


@pytest.fixture
def conn():
    return DatabaseConnection(DBConfig.from_dict({}), PoolConfig())


def test_close_drains_idle_connections_once(conn):
    pool = IdlePool()
    conn._pool = pool

    conn.close()
    conn.close()

    assert pool.drains == 1
    assert conn._pool is None


def test_close_logs_drain_failure(conn, caplog):
    conn._pool = IdlePool(error=mysql_errors.PoolError(msg="pool broken"))

    conn.close()

    assert conn._pool is None
    assert "Failed to close pooled connections" in caplog.text


def test_config_defaults():
    assert DBConfig.from_dict({}).describe() == "root@localhost:3306/qr_attendance"
    assert PoolConfig.from_dict(None) == PoolConfig()
