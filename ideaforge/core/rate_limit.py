"""Per-client rate limiting for the paid generation endpoints."""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from ideaforge.config import get_settings
from ideaforge.core.exceptions import _error_payload

logger = logging.getLogger("ideaforge.core.rate_limit")

limiter = Limiter(key_func=get_remote_address)


def generation_rate_limit() -> str:
  """Resolve the limit per request so configuration reloads take effect."""
  return get_settings().generation_rate_limit


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
  """Reject over-limit generation requests with the shared error body."""
  request_id = getattr(request.state, "request_id", None)
  logger.warning("Generation rate limit exceeded request_id=%s path=%s client=%s limit=%s", request_id, request.url.path, get_remote_address(request), exc.detail)
  return JSONResponse(
    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    content=_error_payload("You have exceeded the generation limit. Please try again later.", request_id=request_id, code="rate_limited"),
  )
