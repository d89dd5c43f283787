"""Shared FastAPI dependencies for the generation service."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Header

from ideaforge.ai.content import build_content_generator
from ideaforge.config import get_settings
from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.generation.controller import JobController
from ideaforge.generation.runner import GenerationRunner
from ideaforge.storage.factory import build_session_store
from ideaforge.storage.sessions_repo import SessionStore

ANONYMOUS_OWNER = "anonymous"


@lru_cache(maxsize=1)
def get_catalog() -> ModuleCatalog:
  return ModuleCatalog(on_demand=get_settings().on_demand_modules)


@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
  return build_session_store(get_settings(), get_catalog())


@lru_cache(maxsize=1)
def get_job_controller() -> JobController:
  """Build the process-wide controller; one per process keeps the job map authoritative."""
  settings = get_settings()
  catalog = get_catalog()
  store = get_session_store()
  runner = GenerationRunner(store, build_content_generator(settings), catalog, module_timeout_seconds=settings.module_timeout_seconds)
  return JobController(store, runner, catalog)


def get_owner_id(x_owner_id: str | None = Header(default=None)) -> str:  # noqa: B008
  """Resolve the caller identity; authentication happens upstream of this service."""
  owner = (x_owner_id or "").strip()
  return owner or ANONYMOUS_OWNER
