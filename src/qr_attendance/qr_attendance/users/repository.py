from __future__ import annotations

from typing import Optional, Protocol

from .model import Admin, Lecturer, Student


class UserRepository(Protocol):
    """Repository interface for students, lecturers and admins.

    Lookups return live (not soft-deleted) rows only. Creates raise
    AlreadyExistsError naming the violated unique key.
    """

    def get_student_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_student_by_email(self, email: str) -> Optional[Student]:
        raise NotImplementedError

    def create_student(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        matric_number: str,
        password_hash: str,
    ) -> int:
        raise NotImplementedError

    def get_lecturer_by_id(self, lecturer_id: int) -> Optional[Lecturer]:
        raise NotImplementedError

    def get_lecturer_by_email(self, email: str) -> Optional[Lecturer]:
        raise NotImplementedError

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
        raise NotImplementedError

    def get_admin_by_email(self, email: str) -> Optional[Admin]:
        raise NotImplementedError
