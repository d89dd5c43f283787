"""Session store selection."""

from __future__ import annotations

import logging

from ideaforge.config import Settings
from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.storage.memory_sessions_repo import InMemorySessionStore
from ideaforge.storage.sessions_repo import SessionStore

logger = logging.getLogger(__name__)


def build_session_store(settings: Settings, catalog: ModuleCatalog) -> SessionStore:
  """Return the Postgres store when a DSN is configured, else an in-process store."""
  module_ids = catalog.module_ids()
  if settings.pg_dsn:
    from ideaforge.storage.postgres_sessions_repo import PostgresSessionStore

    return PostgresSessionStore(module_ids, min_chars=settings.idea_min_chars, max_chars=settings.idea_max_chars)

  logger.warning("IDEAFORGE_PG_DSN is not set; sessions are kept in memory and lost on restart.")
  return InMemorySessionStore(module_ids, min_chars=settings.idea_min_chars, max_chars=settings.idea_max_chars)
