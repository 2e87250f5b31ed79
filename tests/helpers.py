"""Shared helpers for building settings and session tokens in tests."""

from __future__ import annotations

from src.partnerdash.config import Settings
from src.partnerdash.core.security import create_session_token
from tests.streak_fakes import BE_API_KEY, NL_API_KEY


def make_settings(**overrides) -> Settings:
    """Create Settings with both test credentials, ignoring any .env file."""
    defaults = {
        "STREAK_API_KEY": BE_API_KEY,
        "STREAK_API_KEY_NL": NL_API_KEY,
        "STREAK_API_BASE": "https://streak.test/api/v1",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def session_token(email: str | None, sub: str = "user-1", **claims) -> str:
    data = {"sub": sub, **claims}
    if email is not None:
        data["email"] = email
    return create_session_token(data)


def auth_headers(email: str | None, **claims) -> dict[str, str]:
    return {"Authorization": f"Bearer {session_token(email, **claims)}"}
