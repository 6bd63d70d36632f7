"""User registry and bearer-token authentication.

Tokens are random hex strings held in memory, so a restart logs everyone
out. Rejections carry a machine-readable `reason` the client can act on:

    missing_token      no Authorization header
    malformed_token    header present but not a usable token
    empty_token        "Bearer " with nothing after it
    invalid_signature  token not issued by this process (expired or forged)
"""

import hmac
import logging
import secrets

from fastapi import HTTPException, Request
from pydantic import BaseModel

from violet_eightfold.auth import normalize_token

from backend.config import hash_secret

logger = logging.getLogger(__name__)


class User(BaseModel):
    id: str
    username: str
    secret_hash: str
    token: str | None = None


class UserRegistry:
    def __init__(self, users: list[dict]) -> None:
        self._users = [User.model_validate(u) for u in users]

    def login(self, username: str, secret: str) -> User | None:
        """Verify credentials and issue a fresh token. Returns None on mismatch."""
        secret_hash = hash_secret(secret)
        for user in self._users:
            if user.username == username and hmac.compare_digest(user.secret_hash, secret_hash):
                user.token = secrets.token_hex(32)
                logger.info("login user=%s", user.id)
                return user
        logger.info("login rejected username=%s", username)
        return None

    def find_by_token(self, token: str) -> User | None:
        for user in self._users:
            if user.token and hmac.compare_digest(user.token, token):
                return user
        return None


def _unauthorized(reason: str, message: str, hint: str | None = None) -> HTTPException:
    detail = {"error": "unauthorized", "reason": reason, "message": message}
    if hint:
        detail["hint"] = hint
    return HTTPException(401, detail)


def authenticate(request: Request) -> User:
    """FastAPI dependency resolving the bearer token to a User."""
    registry: UserRegistry = request.app.state.users
    header = request.headers.get("authorization")
    if not header:
        raise _unauthorized("missing_token", "Missing or invalid token")

    header = header.strip()
    if header != "Bearer" and not header.startswith("Bearer "):
        # Legacy clients send the raw token without a scheme.
        user = registry.find_by_token(header) if header else None
        if user is None:
            raise _unauthorized("malformed_token", "Invalid token format")
        return user

    token = "" if header == "Bearer" else normalize_token(header)
    if not token:
        raise _unauthorized("empty_token", "Missing or invalid token")
    user = registry.find_by_token(token)
    if user is None:
        logger.info("token validation failed token_len=%d", len(token))
        raise _unauthorized(
            "invalid_signature",
            "Invalid token",
            hint="Token may have expired due to server restart. Please log in again.",
        )
    return user
