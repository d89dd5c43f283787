"""Shared error classification helpers for AI provider handling."""

from __future__ import annotations

from collections.abc import Iterable

import httpx
from google.genai import errors as genai_errors

_MODEL_UNAVAILABLE_HINTS: tuple[str, ...] = (
  "unsupported model",
  "model not found",
  "no such model",
  "is not found",
  "not supported",
  "model is not available",
)

_RATE_LIMIT_HINTS: tuple[str, ...] = (
  "429",
  "too many requests",
  "resource exhausted",
  "resource_exhausted",
  "quota",
  "rate limit",
)

_NETWORK_HINTS: tuple[str, ...] = (
  "fetch failed",
  "connection",
  "network",
  "timed out",
  "timeout",
  "econnrefused",
  "econnreset",
  "enotfound",
  "service unavailable",
  "bad gateway",
)


def _match_hint(message: str, hints: Iterable[str]) -> bool:
  """Return True when any hint appears in the message."""
  return any(hint in message for hint in hints)


def _status_code(exc: Exception) -> int | None:
  if isinstance(exc, genai_errors.APIError):
    return exc.code
  return None


def is_rate_limited(exc: Exception) -> bool:
  """Return True for HTTP 429 or quota exhaustion."""
  if _status_code(exc) == 429:
    return True
  return _match_hint(str(exc).lower(), _RATE_LIMIT_HINTS)


def is_model_unavailable(exc: Exception) -> bool:
  """Return True when the requested model does not exist or is not enabled for the key."""
  if _status_code(exc) == 404:
    return True
  return _match_hint(str(exc).lower(), _MODEL_UNAVAILABLE_HINTS)


def is_network_error(exc: Exception) -> bool:
  """Return True for transport failures worth retrying on the same model."""
  if isinstance(exc, (httpx.TransportError, ConnectionError)):
    return True
  code = _status_code(exc)
  if code is not None and code >= 500:
    return True
  return _match_hint(str(exc).lower(), _NETWORK_HINTS)
