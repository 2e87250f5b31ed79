"""Session tokens and the email-domain allow-list.

Sign-in itself happens in front of this service; what reaches us is a JWT
session token carrying the user's claims (``sub``, ``email`` and optional
profile fields), signed with SESSION_SECRET_KEY. The token is read from the
session cookie, or from an ``Authorization: Bearer`` header.

A request passes the gate in two steps:
1. Authentication: a valid, unexpired session token (else 401).
2. Domain check: the ``email`` claim ends in an allowed domain (else 403).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Request
from jose import JWTError, jwt

from src.partnerdash.config import get_settings
from src.partnerdash.core.errors import AccessDenied, AuthenticationRequired
from src.partnerdash.core.tenant import ALLOWED_DOMAINS, email_domain

SESSION_TOKEN_TYPE = "session"

NO_EMAIL_MESSAGE = "Access denied: No email provided"
DOMAIN_NOT_ALLOWED_MESSAGE = "Access denied: Only {domains} email addresses are allowed".format(
    domains=" and ".join(f"@{d}" for d in ALLOWED_DOMAINS)
)


@dataclass(frozen=True)
class SessionUser:
    """An authenticated user whose email domain is allow-listed."""

    sub: str
    email: str
    domain: str
    first_name: str | None = None
    last_name: str | None = None
    profile_image_url: str | None = None


# ── Session Token Creation / Verification ────────────────────────────────────


def create_session_token(claims: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a signed session token.

    The claims dict should contain at minimum:
    - sub: user id (str)
    - email: user email (str)
    """
    settings = get_settings()
    to_encode = claims.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.SESSION_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "iat": now,
        "type": SESSION_TOKEN_TYPE,
    })
    return jwt.encode(to_encode, settings.SESSION_SECRET_KEY, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str) -> dict[str, Any]:
    """Decode and validate a session token.

    Raises:
        AuthenticationRequired: If the token is invalid, expired, or not a
            session token.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_ALGORITHM],
        )
    except JWTError:
        raise AuthenticationRequired()
    if payload.get("type") != SESSION_TOKEN_TYPE or not payload.get("sub"):
        raise AuthenticationRequired()
    return payload


def read_session_token(request: Request) -> str | None:
    """Return the raw session token from the cookie or Bearer header."""
    settings = get_settings()
    cookie = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if cookie:
        return cookie
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:]
    return None


# ── Domain Check ─────────────────────────────────────────────────────────────


def check_allowed_domain(claims: dict[str, Any]) -> SessionUser:
    """Admit a session whose email domain is allow-listed.

    Raises:
        AccessDenied: No email claim, or a domain outside ALLOWED_DOMAINS.
    """
    email = claims.get("email")
    if not email or not isinstance(email, str):
        raise AccessDenied(NO_EMAIL_MESSAGE)

    domain = email_domain(email)
    if domain not in ALLOWED_DOMAINS:
        raise AccessDenied(DOMAIN_NOT_ALLOWED_MESSAGE)

    return SessionUser(
        sub=str(claims["sub"]),
        email=email,
        domain=domain,
        first_name=claims.get("first_name"),
        last_name=claims.get("last_name"),
        profile_image_url=claims.get("profile_image_url"),
    )
