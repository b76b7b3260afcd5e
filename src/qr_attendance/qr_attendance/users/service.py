from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..auth.tokens import TokenService
from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Role
from ..core.exceptions import AlreadyExistsError, AuthenticationError, ConflictError, ValidationError
from .repository import UserRepository

logger = logging.getLogger(__name__)

_INVALID_CREDENTIALS = "Invalid email or password"

_CONFLICT_MESSAGES = {
    "uq_students_email": "A student with this email already exists",
    "uq_students_matric_number": "A student with this matric number already exists",
    "uq_lecturers_email": "A lecturer with this email already exists",
    "uq_lecturers_staff_id": "A lecturer with this staff ID already exists",
}


@dataclass(frozen=True)
class LoginResult:
    """What the login endpoints hand back to the client."""

    access_token: str
    token_type: str
    expires_in: int
    user: dict[str, Any]


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (TypeError, ValueError):
        # e.g. placeholder hashes or corrupted values
        return False


class AuthService:
    """Use cases: self-registration and login for every role."""

    def __init__(self, users: UserRepository, tokens: TokenService):
        self._users = users
        self._tokens = tokens

    def register_student(
        self,
        *,
        first_name: Any,
        last_name: Any,
        email: Any,
        password: Any,
        matric_number: Any,
    ) -> int:
        first_name = require_non_empty(first_name, "first_name")
        last_name = require_non_empty(last_name, "last_name")
        email = require_email(email)
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)
        matric_number = require_non_empty(matric_number, "matric_number")

        if self._users.get_student_by_email(email):
            raise ConflictError(_CONFLICT_MESSAGES["uq_students_email"])

        try:
            student_id = self._users.create_student(
                first_name=first_name,
                last_name=last_name,
                email=email,
                matric_number=matric_number,
                password_hash=generate_password_hash(password),
            )
        except AlreadyExistsError as exc:
            raise ConflictError(_CONFLICT_MESSAGES.get(exc.constraint, "Student already exists")) from exc
        logger.info("Registered student id=%s", student_id)
        return student_id

    def register_lecturer(
        self,
        *,
        first_name: Any,
        last_name: Any,
        email: Any,
        password: Any,
        department: Any,
        staff_id: Any,
    ) -> int:
        first_name = require_non_empty(first_name, "first_name")
        last_name = require_non_empty(last_name, "last_name")
        email = require_email(email)
        require_min_length(password, "password", MIN_PASSWORD_LENGTH)
        department = require_non_empty(department, "department")
        staff_id = require_non_empty(staff_id, "staff_id")

        if self._users.get_lecturer_by_email(email):
            raise ConflictError(_CONFLICT_MESSAGES["uq_lecturers_email"])

        try:
            lecturer_id = self._users.create_lecturer(
                first_name=first_name,
                last_name=last_name,
                email=email,
                staff_id=staff_id,
                department=department,
                password_hash=generate_password_hash(password),
            )
        except AlreadyExistsError as exc:
            raise ConflictError(_CONFLICT_MESSAGES.get(exc.constraint, "Lecturer already exists")) from exc
        logger.info("Registered lecturer id=%s", lecturer_id)
        return lecturer_id

    def login_student(self, *, email: Any, password: Any) -> LoginResult:
        email, password = self._credentials(email, password)
        student = self._users.get_student_by_email(email)
        if not student or not _password_matches(student.password_hash, password):
            raise AuthenticationError(_INVALID_CREDENTIALS)
        return self._login(
            user_id=student.id,
            email=student.email,
            role=Role.STUDENT,
            profile={"name": student.full_name, "matric_number": student.matric_number},
        )

    def login_lecturer(self, *, email: Any, password: Any) -> LoginResult:
        email, password = self._credentials(email, password)
        lecturer = self._users.get_lecturer_by_email(email)
        if not lecturer or not _password_matches(lecturer.password_hash, password):
            raise AuthenticationError(_INVALID_CREDENTIALS)
        return self._login(
            user_id=lecturer.id,
            email=lecturer.email,
            role=Role.LECTURER,
            profile={
                "name": lecturer.full_name,
                "staff_id": lecturer.staff_id,
                "department": lecturer.department,
            },
        )

    def login_admin(self, *, email: Any, password: Any) -> LoginResult:
        email, password = self._credentials(email, password)
        admin = self._users.get_admin_by_email(email)
        if not admin or not admin.active or not _password_matches(admin.password_hash, password):
            raise AuthenticationError(_INVALID_CREDENTIALS)
        return self._login(
            user_id=admin.id,
            email=admin.email,
            role=Role.ADMIN,
            profile={
                "name": admin.full_name,
                "department": admin.department,
                "is_super_admin": admin.is_super_admin,
            },
        )

    def _credentials(self, email: Any, password: Any) -> tuple[str, str]:
        email = require_email(email)
        if not isinstance(password, str) or not password:
            raise ValidationError("password is required")
        return email, password

    def _login(self, *, user_id: int, email: str, role: Role, profile: Optional[dict] = None) -> LoginResult:
        issued = self._tokens.issue(user_id=user_id, email=email, role=role)
        user = {"id": user_id, "email": email, "role": role.value}
        user.update(profile or {})
        logger.info("Login succeeded role=%s id=%s", role.value, user_id)
        return LoginResult(
            access_token=issued.access_token,
            token_type="Bearer",
            expires_in=issued.expires_in,
            user=user,
        )
