from __future__ import annotations

from typing import Any, Dict, Optional

from ..common.datetime_utils import from_db
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Admin, Lecturer, Student
from .repository import UserRepository

_STUDENT_COLUMNS = "id, first_name, last_name, email, matric_number, password_hash, created_at, deleted_at"
_LECTURER_COLUMNS = "id, first_name, last_name, email, staff_id, department, password_hash, created_at, deleted_at"
_ADMIN_COLUMNS = (
    "id, first_name, last_name, email, password_hash, department, is_super_admin, active, deleted_at"
)


def _to_student(row: Dict[str, Any]) -> Student:
    return Student(
        id=int(row["id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        matric_number=row["matric_number"],
        password_hash=row["password_hash"],
        created_at=from_db(row.get("created_at")),
        deleted_at=from_db(row.get("deleted_at")),
    )


def _to_lecturer(row: Dict[str, Any]) -> Lecturer:
    return Lecturer(
        id=int(row["id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        staff_id=row["staff_id"],
        department=row["department"],
        password_hash=row["password_hash"],
        created_at=from_db(row.get("created_at")),
        deleted_at=from_db(row.get("deleted_at")),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, timeout_ms: Optional[int] = None):
        self._conn_factory = conn_factory
        self._timeout_ms = timeout_ms

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(sql, params)
            return fetchone(cur)

    def get_student_by_id(self, student_id: int) -> Optional[Student]:
        row = self._fetch_one(
            f"SELECT {_STUDENT_COLUMNS} FROM students WHERE id=%s AND deleted_at IS NULL",
            (int(student_id),),
        )
        return _to_student(row) if row else None

    def get_student_by_email(self, email: str) -> Optional[Student]:
        row = self._fetch_one(
            f"SELECT {_STUDENT_COLUMNS} FROM students WHERE email=%s AND deleted_at IS NULL",
            (email,),
        )
        return _to_student(row) if row else None

    def create_student(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        matric_number: str,
        password_hash: str,
    ) -> int:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(first_name, last_name, email, matric_number, password_hash)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (first_name, last_name, email, matric_number, password_hash),
            )
            return int(cur.lastrowid)

    def get_lecturer_by_id(self, lecturer_id: int) -> Optional[Lecturer]:
        row = self._fetch_one(
            f"SELECT {_LECTURER_COLUMNS} FROM lecturers WHERE id=%s AND deleted_at IS NULL",
            (int(lecturer_id),),
        )
        return _to_lecturer(row) if row else None

    def get_lecturer_by_email(self, email: str) -> Optional[Lecturer]:
        row = self._fetch_one(
            f"SELECT {_LECTURER_COLUMNS} FROM lecturers WHERE email=%s AND deleted_at IS NULL",
            (email,),
        )
        return _to_lecturer(row) if row else None

    def create_lecturer(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        staff_id: str,
        department: str,
        password_hash: str,
    ) -> int:
        with db_cursor(self._conn_factory, timeout_ms=self._timeout_ms) as (_, cur):
            cur.execute(
                """
                INSERT INTO lecturers(first_name, last_name, email, staff_id, department, password_hash)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (first_name, last_name, email, staff_id, department, password_hash),
            )
            return int(cur.lastrowid)

    def get_admin_by_email(self, email: str) -> Optional[Admin]:
        row = self._fetch_one(
            f"SELECT {_ADMIN_COLUMNS} FROM admins WHERE email=%s AND deleted_at IS NULL",
            (email,),
        )
        if not row:
            return None
        return Admin(
            id=int(row["id"]),
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            password_hash=row["password_hash"],
            department=row.get("department"),
            is_super_admin=bool(row.get("is_super_admin")),
            active=bool(row.get("active", True)),
            deleted_at=from_db(row.get("deleted_at")),
        )
