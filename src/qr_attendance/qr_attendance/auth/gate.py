from __future__ import annotations

from functools import wraps
from typing import Callable, Optional

from flask import request

from ..core.enums import Role
from ..core.exceptions import AuthenticationError, AuthorizationError
from .tokens import Principal, TokenService

PRINCIPAL_ENVIRON_KEY = "qr_attendance.principal"


def parse_bearer(header_value: Optional[str]) -> str:
    """Extract the token from ``Bearer <token>``.

    The scheme is case-insensitive and surrounding whitespace is tolerated,
    but exactly two fields are required.
    """

    if not header_value or not header_value.strip():
        raise AuthenticationError("Authorization header is required")
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return parts[1]


def ensure_owner_or_staff(principal: Principal, owner_id: int) -> None:
    """Students may only touch resources they own; lecturers and admins may read any."""

    if principal.role == Role.STUDENT and principal.user_id != int(owner_id):
        raise AuthorizationError("Students can only access their own records")


class AuthGate:
    """Authenticate, then authorize, before a view runs.

    Views decorated with :meth:`require` receive the caller as the
    ``principal`` keyword argument.
    """

    def __init__(self, tokens: TokenService):
        self._tokens = tokens

    def authenticate(self, header_value: Optional[str]) -> Principal:
        return self._tokens.verify(parse_bearer(header_value))

    def require(self, *roles: Role) -> Callable:
        allowed = frozenset(roles)

        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                principal = self.authenticate(request.headers.get("Authorization"))
                # Read back by the error handler when logging 5xx responses.
                request.environ[PRINCIPAL_ENVIRON_KEY] = principal
                if allowed and principal.role not in allowed:
                    raise AuthorizationError("You do not have permission to access this resource")
                return view(*args, principal=principal, **kwargs)

            return wrapper

        return decorator
