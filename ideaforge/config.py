"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from ideaforge.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

DEFAULT_GEMINI_MODELS: tuple[str, ...] = ("gemini-2.5-flash", "gemini-2.5-flash-lite", "gemini-2.0-flash", "gemini-2.0-flash-lite")
CONTENT_PROVIDERS = {"gemini", "dummy"}


@dataclass(frozen=True)
class Settings:
  """Typed settings for the IdeaForge service."""

  environment: str
  debug: bool
  allowed_origins: tuple[str, ...]
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  content_provider: str
  gemini_api_key: str | None
  gemini_models: tuple[str, ...]
  module_timeout_seconds: float
  idea_min_chars: int
  idea_max_chars: int
  on_demand_modules: tuple[str, ...]
  history_limit: int
  poll_interval_seconds: float
  generation_rate_limit: str


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  if not raw:
    raise ValueError("IDEAFORGE_ALLOWED_ORIGINS must be set to one or more origins.")

  origins = [origin.strip() for origin in raw.split(",") if origin.strip()]

  if not origins:
    raise ValueError("IDEAFORGE_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("IDEAFORGE_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_csv(raw: str | None) -> tuple[str, ...]:
  if not raw:
    return ()
  return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _positive_float(name: str, default: str) -> float:
  value = float(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive number.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("IDEAFORGE_ENV", "development").lower()

  # Toggle SQL echo and verbose diagnostics in non-production environments.
  debug = _parse_bool(os.getenv("IDEAFORGE_DEBUG"))

  log_max_bytes = _positive_int("IDEAFORGE_LOG_MAX_BYTES", "5242880")  # 5MB default
  log_backup_count = int(os.getenv("IDEAFORGE_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("IDEAFORGE_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Allow opt-in logging of 4xx HTTPExceptions for diagnostics.
  log_http_4xx = _parse_bool(os.getenv("IDEAFORGE_LOG_HTTP_4XX"))

  content_provider = (os.getenv("IDEAFORGE_CONTENT_PROVIDER") or "gemini").strip().lower()
  if content_provider not in CONTENT_PROVIDERS:
    raise ValueError(f"IDEAFORGE_CONTENT_PROVIDER must be one of {sorted(CONTENT_PROVIDERS)}.")

  gemini_models = _parse_csv(os.getenv("IDEAFORGE_GEMINI_MODELS")) or DEFAULT_GEMINI_MODELS

  idea_min_chars = _positive_int("IDEAFORGE_IDEA_MIN_CHARS", "10")
  idea_max_chars = _positive_int("IDEAFORGE_IDEA_MAX_CHARS", "5000")
  if idea_min_chars > idea_max_chars:
    raise ValueError("IDEAFORGE_IDEA_MIN_CHARS must not exceed IDEAFORGE_IDEA_MAX_CHARS.")

  return Settings(
    environment=environment,
    debug=debug,
    allowed_origins=_parse_origins(os.getenv("IDEAFORGE_ALLOWED_ORIGINS", "http://localhost:5173")),
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=log_http_4xx,
    pg_dsn=_optional_str(os.getenv("IDEAFORGE_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("IDEAFORGE_PG_CONNECT_TIMEOUT", "5"),
    content_provider=content_provider,
    gemini_api_key=_optional_str(os.getenv("GEMINI_API_KEY")),
    gemini_models=gemini_models,
    module_timeout_seconds=_positive_float("IDEAFORGE_MODULE_TIMEOUT_SECONDS", "90"),
    idea_min_chars=idea_min_chars,
    idea_max_chars=idea_max_chars,
    on_demand_modules=_parse_csv(os.getenv("IDEAFORGE_ON_DEMAND_MODULES")),
    history_limit=_positive_int("IDEAFORGE_HISTORY_LIMIT", "20"),
    poll_interval_seconds=_positive_float("IDEAFORGE_POLL_INTERVAL_SECONDS", "2.0"),
    generation_rate_limit=(os.getenv("IDEAFORGE_GENERATION_RATE_LIMIT") or "100/hour").strip(),
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration like CORS."""
  # Migrations and offline scripts only need the DSN.
  debug = _parse_bool(os.getenv("IDEAFORGE_DEBUG"))
  pg_connect_timeout = _positive_int("IDEAFORGE_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("IDEAFORGE_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))
  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value
