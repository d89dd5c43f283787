from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from ideaforge.api.routes import modules, sessions
from ideaforge.config import get_settings
from ideaforge.core.exceptions import generation_exception_handler, global_exception_handler, http_exception_handler, request_validation_exception_handler
from ideaforge.core.lifespan import lifespan
from ideaforge.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from ideaforge.core.rate_limit import limiter, rate_limit_exceeded_handler
from ideaforge.generation.errors import GenerationError

__version__ = "0.1.0"

settings = get_settings()

app = FastAPI(title="IdeaForge Engine", version=__version__, lifespan=lifespan)
app.state.limiter = limiter

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.allowed_origins,
  allow_credentials=True,
  allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
  allow_headers=["content-type", "authorization", "x-owner-id"],
  expose_headers=["content-length", "x-request-id"],
)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(GenerationError, generation_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": __version__}


app.include_router(sessions.router, prefix="/v1/sessions", tags=["sessions"])
app.include_router(modules.router, prefix="/v1/modules", tags=["modules"])
