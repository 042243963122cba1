# SPDX-License-Identifier: MIT
"""API token authentication.

Tokens are configured ahead of time; only their SHA-256 digests are kept, each
mapped to the user id it authenticates.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Annotated

from fastapi import Header, Request

from .errors import UnauthorizedError


AUTH_SCHEMES = ("bearer", "token")


@dataclass
class AuthenticatedUser:
    """The user id a request authenticated as."""

    user_id: str


def hash_token(token: str) -> str:
    """Hex SHA-256 digest of a plaintext token, as stored in the config."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_authorization_header(auth_header: str | None) -> str | None:
    """Token from an ``Authorization: Bearer <token>`` (or ``Token <token>``) header."""
    scheme, _, token = (auth_header or "").strip().partition(" ")
    if scheme.lower() not in AUTH_SCHEMES:
        return None
    return token.strip() or None


def resolve_token(token: str, tokens: dict[str, str]) -> str | None:
    """Return the user id for a plaintext token, or None if it is unknown."""
    token_hash = hash_token(token)
    for known_hash, user_id in tokens.items():
        if hmac.compare_digest(known_hash, token_hash):
            return user_id
    return None


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser:
    """FastAPI dependency to get the current authenticated user.

    Raises:
        UnauthorizedError: If no valid authentication is provided
    """
    token = parse_authorization_header(authorization)
    if not token:
        raise UnauthorizedError("Authentication required")

    user_id = resolve_token(token, request.app.state.config.auth.tokens)
    if user_id is None:
        raise UnauthorizedError("Invalid API token")
    return AuthenticatedUser(user_id=user_id)


async def get_optional_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthenticatedUser | None:
    """FastAPI dependency to optionally get the current user.

    Returns None if no authentication is provided, rather than raising an error.
    """
    try:
        return await get_current_user(request, authorization)
    except UnauthorizedError:
        return None
