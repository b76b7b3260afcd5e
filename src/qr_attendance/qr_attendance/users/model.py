from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Student:
    """Domain entity: a self-registered student.

    Plain data; no database access lives here.
    """

    id: int
    first_name: str
    last_name: str
    email: str
    matric_number: str
    password_hash: str
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    role = Role.STUDENT

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Lecturer:
    id: int
    first_name: str
    last_name: str
    email: str
    staff_id: str
    department: str
    password_hash: str
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    role = Role.LECTURER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Admin:
    id: int
    first_name: str
    last_name: str
    email: str
    password_hash: str
    department: Optional[str] = None
    is_super_admin: bool = False
    active: bool = True
    deleted_at: Optional[datetime] = None

    role = Role.ADMIN

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
