"""Completion clients — the only interface to the LLM collaborator.

Every client matches the protocol:

    def complete(system_instruction, messages, *, profile=None, stream=False)
        -> AsyncIterator[str]

and always returns an async iterator of text chunks. Transports that cannot
stream yield the full reply as a single chunk, so callers use one consumption
pattern regardless.

Two implementations are provided:

    ChatCompletionsClient — OpenAI-compatible POST /v1/chat/completions.
                            Supports real SSE streaming. Used by the backend
                            to reach the upstream model.
    BackendClient         — the application backend (POST /api/council,
                            /api/integrate, /api/login) with bearer auth.
                            The backend rebuilds the system instruction from
                            the user profile, so only the profile is sent.

Clients never retry; retry is a caller decision.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from typing import Any, Protocol

import httpx

from violet_eightfold.auth import Credentials
from violet_eightfold.models import ChatMessage, QuestState, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CompletionError(RuntimeError):
    """Base for all completion transport failures."""


class AuthenticationError(CompletionError):
    """The credential is missing, invalid or expired. Recover by logging in again."""

    def __init__(self, message: str, reason: str = "unauthorized") -> None:
        super().__init__(message)
        self.reason = reason


class TransportError(CompletionError):
    """Network or backend failure without credential implications. Recover by retrying."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------

class CompletionClient(Protocol):
    def complete(
        self,
        system_instruction: str,
        messages: list[ChatMessage],
        *,
        profile: UserProfile | None = None,
        stream: bool = False,
    ) -> AsyncIterator[str]: ...


async def collect(chunks: AsyncIterator[str]) -> str:
    """Drain a chunk iterator into one string."""
    parts: list[str] = []
    async for chunk in chunks:
        parts.append(chunk)
    return "".join(parts)


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Shared HTTP plumbing
# ---------------------------------------------------------------------------

class _HttpClient:
    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _unauthorized(self) -> None:
        """Hook run once per 401 response."""

    def _check_response(self, resp: httpx.Response, clear_on_401: bool = True) -> None:
        if resp.status_code == 401:
            data = _json_or_empty(resp)
            reason = data.get("reason") or "unauthorized"
            if clear_on_401:
                self._unauthorized()
            message = data.get("message") or data.get("hint") or "Session expired. Please sign in again."
            raise AuthenticationError(message, reason=reason)
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            data = _json_or_empty(resp)
            detail = data.get("message") or data.get("error") or ""
            message = f"Backend returned HTTP {resp.status_code}"
            if detail:
                message += f": {detail}"
            raise TransportError(message, status_code=resp.status_code) from e

    async def _post(
        self,
        path: str,
        body: dict[str, Any],
        headers: dict[str, str],
        clear_on_401: bool = True,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=headers)
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {self._base_url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {self._base_url} failed: {e}") from e

        self._check_response(resp, clear_on_401=clear_on_401)
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {url}") from e
        if not isinstance(data, dict):
            raise TransportError(f"Unexpected response format from {url}")
        return data


# ---------------------------------------------------------------------------
# ChatCompletionsClient: OpenAI-compatible upstream
# ---------------------------------------------------------------------------

class ChatCompletionsClient(_HttpClient):
    """Async client for OpenAI-compatible chat completion backends.

      POST {provider_url}/v1/chat/completions
        {"model", "messages": [system, ...history], "temperature", "stream"}
      Response:  {"choices": [{"message": {"content": "..."}}]}
      Streaming: SSE "data: {choices: [{delta: {content}}]}" lines, then "data: [DONE]"

    Args:
        provider_url: Base URL, e.g. "https://api.openai.com".
        api_key:      Bearer token, or empty string if not required.
        model:        Model identifier.
        temperature:  Sampling temperature.
        timeout:      HTTP timeout in seconds.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(provider_url, timeout)
        self._api_key = api_key
        self._model = model
        self._temperature = temperature

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self, system_instruction: str, messages: list[ChatMessage], stream: bool
    ) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "system", "content": system_instruction}]
            + [{"role": m.role, "content": m.content} for m in messages],
            "temperature": self._temperature,
            "stream": stream,
        }

    async def complete(
        self,
        system_instruction: str,
        messages: list[ChatMessage],
        *,
        profile: UserProfile | None = None,
        stream: bool = False,
    ) -> AsyncIterator[str]:
        body = self._build_body(system_instruction, messages, stream)
        logger.debug(
            "chat completion model=%s messages=%d stream=%s",
            self._model, len(body["messages"]), stream,
        )
        if stream:
            async for chunk in self._stream(body):
                yield chunk
            return

        data = await self._post("/v1/chat/completions", body, self._headers())
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise TransportError("Unexpected response format from chat completions backend")
        text = message.get("content") or ""
        if not isinstance(text, str):
            raise TransportError("Unexpected response format from chat completions backend")
        logger.debug("chat completion response len=%d", len(text))
        yield text

    async def _stream(self, body: dict[str, Any]) -> AsyncIterator[str]:
        url = f"{self._base_url}/v1/chat/completions"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream("POST", url, json=body, headers=self._headers()) as resp:
                    if resp.status_code >= 400:
                        await resp.aread()
                        self._check_response(resp)
                    async for line in resp.aiter_lines():
                        line = line.strip()
                        if not line.startswith("data:"):
                            continue
                        payload = line[len("data:"):].strip()
                        if payload == "[DONE]":
                            break
                        try:
                            event = json.loads(payload)
                        except json.JSONDecodeError as e:
                            raise TransportError("Malformed event in completion stream") from e
                        if not isinstance(event, dict):
                            raise TransportError("Unexpected event format in completion stream")
                        choices = event.get("choices") or []
                        if not choices:
                            continue
                        first = choices[0] if isinstance(choices, list) else None
                        delta = first.get("delta") if isinstance(first, dict) else None
                        text = delta.get("content") if isinstance(delta, dict) else None
                        if not isinstance(first, dict) or not isinstance(delta or {}, dict) or (
                            text is not None and not isinstance(text, str)
                        ):
                            raise TransportError("Unexpected event format in completion stream")
                        if text:
                            yield text
        except httpx.ConnectError as e:
            raise TransportError(f"Cannot connect to {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Stream from {self._base_url} timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise TransportError(f"Stream from {self._base_url} failed: {e}") from e


# ---------------------------------------------------------------------------
# BackendClient: the application's own /api surface
# ---------------------------------------------------------------------------

class BackendClient(_HttpClient):
    """Client for the council backend.

    Any 401 response, whatever its `reason`, raises AuthenticationError and
    clears `credentials` exactly once, which fires the logout listeners.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        super().__init__(base_url, timeout)
        self.credentials = credentials

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers.update(self.credentials.authorization_header())
        return headers

    def _unauthorized(self) -> None:
        self.credentials.clear()

    def _require_auth(self) -> None:
        if not self.credentials.authenticated:
            raise AuthenticationError("User not authenticated", reason="missing_token")

    @staticmethod
    def _wire_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
        now = int(time.time() * 1000)
        wire: list[dict[str, Any]] = []
        for i, m in enumerate(messages):
            entry: dict[str, Any] = {
                "id": m.id or f"msg-{i}", "role": m.role, "content": m.content, "timestamp": now,
            }
            if m.archetype_id:
                entry["archetypeId"] = m.archetype_id
            wire.append(entry)
        return wire

    async def login(self, username: str, secret: str) -> Credentials:
        data = await self._post(
            "/api/login",
            {"username": username, "secret": secret},
            super()._headers(),
            clear_on_401=False,
        )
        user_id, token = data.get("userId"), data.get("token")
        if not user_id or not token:
            raise TransportError("Unexpected response format from /api/login")
        self.credentials.set(user_id, token)
        logger.info("logged in as user=%s", user_id)
        return self.credentials

    async def complete(
        self,
        system_instruction: str,
        messages: list[ChatMessage],
        *,
        profile: UserProfile | None = None,
        stream: bool = False,
    ) -> AsyncIterator[str]:
        self._require_auth()
        profile = profile or UserProfile()
        body = {
            "messages": self._wire_messages(messages),
            "userProfile": profile.to_wire(),
        }
        logger.debug(
            "council request mode=%s messages=%d instruction_len=%d",
            profile.mode.value, len(messages), len(system_instruction),
        )
        data = await self._post("/api/council", body, self._headers())
        reply = data.get("reply", "")
        if not isinstance(reply, str):
            raise TransportError("Unexpected response format from /api/council")
        logger.debug("council response len=%d", len(reply))
        yield reply

    async def integrate(
        self,
        session_history: list[ChatMessage],
        topic: str | None = None,
        quest_state: QuestState | None = None,
    ) -> dict[str, Any]:
        self._require_auth()
        body: dict[str, Any] = {"sessionHistory": self._wire_messages(session_history)}
        if topic:
            body["topic"] = topic
        if quest_state is not None:
            body["currentQuestState"] = quest_state.to_wire()
        return await self._post("/api/integrate", body, self._headers())
