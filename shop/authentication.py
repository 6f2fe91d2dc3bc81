# shop/authentication.py - JWT bearer auth (PyJWT) for DRF
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone

import jwt
from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication, get_authorization_header


@dataclass(frozen=True)
class AuthUser:
    """Identity carried on request.user; role is "user" or "admin"."""
    user_id: uuid.UUID
    role: str

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def issue_token(user_id, role: str, now=None) -> str:
    now = now or datetime.now(dt_timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "exp": now + timedelta(hours=settings.JWT_TTL_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> AuthUser:
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return AuthUser(user_id=uuid.UUID(str(claims["sub"])), role=str(claims.get("role") or "user"))
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise exceptions.AuthenticationFailed("Unauthorized")


class JWTAuthentication(BaseAuthentication):
    keyword = "Bearer"

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword.lower().encode():
            return None
        if len(auth) != 2:
            raise exceptions.AuthenticationFailed("Unauthorized")
        try:
            token = auth[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed("Unauthorized")
        return decode_token(token), token

    def authenticate_header(self, request):
        return self.keyword
