#!/usr/bin/env python3
"""Typed LLM errors and context-window overflow detection.

Providers report an oversized prompt in different ways, so detection is a
status filter plus a substring heuristic over the response body, with one
structured check for Anthropic's error schema.
"""

from __future__ import annotations

import json
from typing import Iterable, Optional, Union

# Statuses providers use for payload or limit failures.
CONTEXT_WINDOW_STATUSES = frozenset({400, 413, 429})

CONTEXT_WINDOW_INDICATORS = (
    "context length",
    "context window",
    "token limit",
    "maximum context",
    "input too large",
    "input is too long",
    "prompt is too long",
    "prompt too long",
    "maximum tokens",
    "exceeds maximum",
    "too many tokens",
)

Body = Union[bytes, bytearray, str, None]


class LLMError(Exception):
    """Typed error with a lightweight `.code` used to drive retry decisions."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN",
        *,
        provider: str = "",
        status_code: Optional[int] = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.provider = provider
        self.status_code = status_code
        self.body = body


class ContextWindowError(LLMError):
    """The provider rejected the prompt for exceeding its input size."""

    def __init__(self, message: str, *, provider: str = "", status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message, code="CONTEXT_WINDOW", provider=provider, status_code=status_code, body=body)

    def __str__(self) -> str:
        return f"context window exceeded for {self.provider or 'unknown provider'} (status {self.status_code}): {self.args[0]}"


def _as_text(body: Body) -> str:
    if body is None:
        return ""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    return str(body)


def is_context_window_error(status_code: int, body: Body, indicators: Optional[Iterable[str]] = None) -> bool:
    """Heuristic: qualifying status and a context/token-limit phrase in the body."""
    if status_code not in CONTEXT_WINDOW_STATUSES:
        return False
    text = _as_text(body).lower()
    for indicator in indicators if indicators is not None else CONTEXT_WINDOW_INDICATORS:
        if indicator.lower() in text:
            return True
    return False


def is_claude_prompt_too_long(body: Body) -> bool:
    """Anthropic's structured invalid_request_error for an oversized prompt."""
    try:
        data = json.loads(_as_text(body))
    except (json.JSONDecodeError, ValueError):
        return False
    if not isinstance(data, dict) or data.get("type") != "error":
        return False
    err = data.get("error")
    if not isinstance(err, dict) or err.get("type") != "invalid_request_error":
        return False
    return "prompt is too long" in str(err.get("message", "")).lower()


def _claude_message(body: str) -> str:
    try:
        return str(json.loads(body)["error"]["message"])
    except (ValueError, KeyError, TypeError):
        return body


def _code_for_status(status_code: int) -> str:
    if status_code == 429:
        return "RATE_LIMIT"
    if status_code in (401, 403):
        return "UNAUTHORIZED"
    if status_code in (408, 504):
        return "TIMEOUT"
    return "API"


def error_from_response(status_code: int, body: Body, provider: str) -> LLMError:
    """Build the typed error for a failed provider response."""
    text = _as_text(body)
    if is_claude_prompt_too_long(text):
        return ContextWindowError(_claude_message(text), provider=provider, status_code=status_code, body=text)
    if is_context_window_error(status_code, text):
        return ContextWindowError(text, provider=provider, status_code=status_code, body=text)
    return LLMError(
        f"API error {status_code}: {text[:500]}",
        code=_code_for_status(status_code),
        provider=provider,
        status_code=status_code,
        body=text,
    )


# Codes a client assigned deliberately; the body heuristic must not override them.
_NON_OVERFLOW_CODES = frozenset({"RATE_LIMIT", "TIMEOUT", "NETWORK", "UNAUTHORIZED", "INVALID_RESPONSE"})


def is_context_window_failure(exc: BaseException) -> bool:
    """Classify an exception raised by any LLM client.

    Only untyped API failures (code API or UNKNOWN) get the body heuristic.
    """
    if isinstance(exc, ContextWindowError):
        return True
    if not isinstance(exc, LLMError) or exc.status_code is None or exc.code in _NON_OVERFLOW_CODES:
        return False
    return is_context_window_error(exc.status_code, exc.body) or is_claude_prompt_too_long(exc.body)
