import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ideaforge.core.database import dispose_engine
from ideaforge.core.logging import _initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Initialize logging, heal sessions left running by a previous process, and drain jobs on shutdown."""
  from ideaforge.api.deps import get_job_controller, get_session_store
  from ideaforge.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("ideaforge.core.lifespan")

  try:
    _initialize_logging(settings)
    logger.info("Startup complete - logging verified (environment=%s).", settings.environment)
  except Exception:
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  # Job state is process-local, so anything still marked running belonged to a dead process.
  recovered = await get_session_store().recover_interrupted()
  if recovered:
    logger.warning("Marked %s interrupted session(s) as no longer running.", recovered)

  yield

  if get_job_controller.cache_info().currsize:
    await get_job_controller().shutdown()
  await dispose_engine()
  logger.info("Shutdown complete.")
