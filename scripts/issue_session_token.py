#!/usr/bin/env python3
"""CLI script to issue a session token for local development.

Usage:
    python scripts/issue_session_token.py --email ann@techorama.be
    python scripts/issue_session_token.py --email piet@techorama.nl --first-name Piet --minutes 30

Signs with SESSION_SECRET_KEY from the environment or .env file. The token
is accepted as the session cookie or as an ``Authorization: Bearer`` header.
Refuses emails outside the allowed domains, since the API would reject them.
"""

from __future__ import annotations

import argparse
import os
import sys
import uuid
from datetime import timedelta

# Ensure project root is on sys.path so we can import src.partnerdash
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


def issue(email: str, first_name: str | None, last_name: str | None, minutes: int | None) -> str:
    from src.partnerdash.core.errors import AccessDenied
    from src.partnerdash.core.security import check_allowed_domain, create_session_token

    claims = {"sub": str(uuid.uuid4()), "email": email}
    if first_name:
        claims["first_name"] = first_name
    if last_name:
        claims["last_name"] = last_name

    try:
        check_allowed_domain(claims)
    except AccessDenied as exc:
        raise SystemExit(exc.message)

    expires = timedelta(minutes=minutes) if minutes else None
    return create_session_token(claims, expires_delta=expires)


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a development session token")
    parser.add_argument("--email", required=True, help="User email (techorama.be or techorama.nl)")
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    parser.add_argument("--minutes", type=int, default=None, help="Lifetime (default: SESSION_EXPIRE_MINUTES)")
    args = parser.parse_args()

    print(issue(args.email, args.first_name, args.last_name, args.minutes))


if __name__ == "__main__":
    main()
