"""Job controller: the externally callable generation state machine."""

from __future__ import annotations

import asyncio
import logging

from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.generation.errors import AlreadyInProgressError, AlreadyRunningError, NotFoundError
from ideaforge.generation.models import GenerationJob, IdeaSession, ModuleRecord
from ideaforge.generation.runner import GenerationRunner, RunSummary
from ideaforge.storage.sessions_repo import SessionStore

logger = logging.getLogger(__name__)


class JobController:
  """Own the mapping from session to in-flight job.

  Status is never cached here; every read goes through the store so a restart
  loses no observable progress.
  """

  def __init__(self, store: SessionStore, runner: GenerationRunner, catalog: ModuleCatalog) -> None:
    self._store = store
    self._runner = runner
    self._catalog = catalog
    self._jobs: dict[str, GenerationJob] = {}

  @property
  def store(self) -> SessionStore:
    return self._store

  @property
  def catalog(self) -> ModuleCatalog:
    return self._catalog

  def active_job(self, session_id: str) -> GenerationJob | None:
    return self._jobs.get(session_id)

  async def start(self, session_id: str) -> GenerationJob:
    """Start a full run over every core module in the background."""
    # Reserve before the first await so concurrent callers see the slot taken.
    if session_id in self._jobs:
      raise AlreadyRunningError(f"Session '{session_id}' is already generating.")
    job = GenerationJob(session_id=session_id, mode="full", target_modules=self._catalog.core_ids())
    self._jobs[session_id] = job

    try:
      await self._store.begin_run(session_id, reset_cancelled=True)
    except BaseException:
      self._jobs.pop(session_id, None)
      raise

    job.task = asyncio.create_task(self._drive(job), name=f"generation:{session_id}")
    logger.info("Started generation for session %s (%s modules)", session_id, len(job.target_modules))
    return job

  async def _drive(self, job: GenerationJob) -> RunSummary | None:
    summary: RunSummary | None = None
    try:
      summary = await self._runner.run(job, job.target_modules)
      return summary
    except NotFoundError:
      logger.warning("Session %s disappeared during generation", job.session_id)
      return None
    except asyncio.CancelledError:
      logger.warning("Generation task for session %s was cancelled", job.session_id)
      raise
    except Exception:
      logger.exception("Generation run for session %s crashed", job.session_id)
      return None
    finally:
      try:
        cancelled = summary.cancelled if summary is not None else job.cancel_requested
        await asyncio.shield(self._store.end_run(job.session_id, cancelled=cancelled))
      except NotFoundError:
        pass
      finally:
        self._jobs.pop(job.session_id, None)

  def cancel(self, session_id: str) -> bool:
    """Flag the active job for cancellation; a no-op when nothing is running."""
    job = self._jobs.get(session_id)
    if job is None:
      logger.info("Cancel requested for session %s with no active job", session_id)
      return False
    job.cancel_requested = True
    logger.info("Cancel requested for session %s (current module: %s)", session_id, job.current_module_id)
    return True

  async def status(self, session_id: str) -> IdeaSession:
    return await self._store.read(session_id)

  async def regenerate(self, session_id: str, module_id: str) -> ModuleRecord:
    """Regenerate one module synchronously and return its updated record."""
    self._catalog.get(module_id)

    active = self._jobs.get(session_id)
    if active is not None:
      if active.current_module_id == module_id:
        raise AlreadyInProgressError(f"Module '{module_id}' is already being generated.")
      raise AlreadyRunningError(f"Session '{session_id}' is already generating.")

    job = GenerationJob(session_id=session_id, mode="single", target_modules=(module_id,))
    self._jobs[session_id] = job
    try:
      session = await self._store.read(session_id)
      current = session.modules.get(module_id)
      if current is None:
        raise NotFoundError(f"Unknown module '{module_id}' for session '{session_id}'.")
      if current.state == "in_progress":
        raise AlreadyInProgressError(f"Module '{module_id}' is already being generated.")
      await self._store.begin_run(session_id, reset_cancelled=False)
      try:
        summary = await self._runner.run(job, job.target_modules)
      finally:
        await asyncio.shield(self._store.end_run(session_id, cancelled=False))
      record = summary.records.get(module_id)
      if record is None:
        # Cancelled before the module started; report the stored state unchanged.
        record = (await self._store.read(session_id)).modules[module_id]
      return record
    finally:
      self._jobs.pop(session_id, None)

  async def join(self, session_id: str) -> None:
    """Wait for the active background job of a session, if any."""
    job = self._jobs.get(session_id)
    if job is not None and job.task is not None:
      await asyncio.gather(job.task, return_exceptions=True)

  async def shutdown(self) -> None:
    """Cancel and await every background job."""
    tasks = [job.task for job in self._jobs.values() if job.task is not None]
    for task in tasks:
      task.cancel()
    if tasks:
      logger.info("Cancelling %s in-flight generation job(s)", len(tasks))
      await asyncio.gather(*tasks, return_exceptions=True)
