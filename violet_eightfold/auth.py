"""Cached bearer credentials for the backend client.

Clearing the credentials notifies every registered logout listener so the
host application can force a re-login.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


def normalize_token(token: str) -> str:
    """Strip any number of leading "Bearer " prefixes."""
    token = token.strip()
    while token.startswith("Bearer "):
        token = token[len("Bearer "):].strip()
    return token


class Credentials:
    def __init__(self, user_id: str = "", token: str = "") -> None:
        self.user_id = user_id
        self.token = normalize_token(token) if token else ""
        self._listeners: list[Callable[[], None]] = []

    @property
    def authenticated(self) -> bool:
        return bool(self.user_id and self.token)

    def set(self, user_id: str, token: str) -> None:
        self.user_id = user_id
        self.token = normalize_token(token)

    def clear(self) -> None:
        logger.info("clearing cached credentials for user=%s", self.user_id or "-")
        self.user_id = ""
        self.token = ""
        for listener in list(self._listeners):
            listener()

    def on_logout(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}
