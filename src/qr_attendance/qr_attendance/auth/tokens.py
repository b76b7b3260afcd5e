from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import jwt

from ..common.datetime_utils import now_utc
from ..core.constants import ADMIN_TOKEN_DAYS, LECTURER_TOKEN_MINUTES, STUDENT_TOKEN_MINUTES
from ..core.enums import Role
from ..core.exceptions import AuthenticationError

ALGORITHM = "HS256"

TOKEN_LIFETIMES = {
    Role.STUDENT: timedelta(minutes=STUDENT_TOKEN_MINUTES),
    Role.LECTURER: timedelta(minutes=LECTURER_TOKEN_MINUTES),
    Role.ADMIN: timedelta(days=ADMIN_TOKEN_DAYS),
}


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, handed to views as the ``principal`` argument."""

    user_id: int
    email: str
    role: Role

    def describe(self) -> str:
        return f"{self.role.value}:{self.user_id}"


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    expires_at: datetime
    expires_in: int


class TokenService:
    """HS256 bearer tokens with claims ``{id, email, role, iat, exp}``."""

    def __init__(self, secret: str, *, clock: Optional[Callable[[], datetime]] = None):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._clock = clock or now_utc

    def issue(self, *, user_id: int, email: str, role: Role) -> IssuedToken:
        issued_at = self._clock()
        lifetime = TOKEN_LIFETIMES[role]
        expires_at = issued_at + lifetime
        payload = {
            "id": int(user_id),
            "email": email,
            "role": role.value,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(access_token=token, expires_at=expires_at, expires_in=int(lifetime.total_seconds()))

    def verify(self, token: str) -> Principal:
        now = self._clock()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp", "iat"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.InvalidTokenError:
            raise AuthenticationError("Invalid or expired token") from None

        # Expiry and issue time are checked against the injected clock.
        exp = payload.get("exp")
        iat = payload.get("iat")
        if not isinstance(exp, (int, float)) or not isinstance(iat, (int, float)):
            raise AuthenticationError("Invalid or expired token")
        now_ts = now.timestamp()
        if now_ts >= exp:
            raise AuthenticationError("Invalid or expired token")
        if iat > now_ts:
            raise AuthenticationError("Invalid or expired token")

        try:
            role = Role(payload.get("role"))
            user_id = int(payload["id"])
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Invalid token claims") from None
        if user_id <= 0:
            raise AuthenticationError("Invalid token claims")
        return Principal(user_id=user_id, email=str(payload.get("email") or ""), role=role)

