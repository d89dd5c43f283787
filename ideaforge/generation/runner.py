"""Sequential module generation for one session."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from ideaforge.ai.content import ContentGenerator
from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.generation.errors import ProviderError
from ideaforge.generation.models import INTERRUPTED_ERROR, Begin, Fail, GenerationJob, ModuleRecord, Succeed
from ideaforge.storage.sessions_repo import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
  """Outcome of one runner pass, used for logging and tests."""

  session_id: str
  attempted: list[str] = field(default_factory=list)
  succeeded: list[str] = field(default_factory=list)
  failed: list[str] = field(default_factory=list)
  cancelled: bool = False
  records: dict[str, ModuleRecord] = field(default_factory=dict)


class GenerationRunner:
  """Drive modules to completion one at a time, persisting each result as soon as it lands.

  The cancellation flag on the job is checked only between modules; a module
  call in flight is allowed to finish or time out.
  """

  def __init__(self, store: SessionStore, generator: ContentGenerator, catalog: ModuleCatalog, *, module_timeout_seconds: float) -> None:
    self._store = store
    self._generator = generator
    self._catalog = catalog
    self._module_timeout_seconds = module_timeout_seconds

  async def run(self, job: GenerationJob, module_ids: Iterable[str]) -> RunSummary:
    summary = RunSummary(session_id=job.session_id)
    ordered = self._catalog.order(module_ids)
    started = time.monotonic()

    for module_id in ordered:
      if job.cancel_requested:
        summary.cancelled = True
        logger.info("Run for session %s cancelled before module %s", job.session_id, module_id)
        break

      job.current_module_id = module_id
      try:
        record = await self._run_module(job, module_id)
      finally:
        job.current_module_id = None

      summary.attempted.append(module_id)
      summary.records[module_id] = record
      if record.state == "done":
        summary.succeeded.append(module_id)
      else:
        summary.failed.append(module_id)

    logger.info(
      "Run for session %s finished in %.1fs: succeeded=%s failed=%s cancelled=%s",
      job.session_id,
      time.monotonic() - started,
      summary.succeeded,
      summary.failed,
      summary.cancelled,
    )
    return summary

  async def _run_module(self, job: GenerationJob, module_id: str) -> ModuleRecord:
    await self._store.update_module(job.session_id, module_id, Begin())
    logger.info("Generating module %s for session %s", module_id, job.session_id)

    # Read after begin so prior payloads reflect everything already persisted.
    session = await self._store.read(job.session_id)
    descriptor = self._catalog.get(module_id)
    prior = {dependency: payload for dependency, payload in session.done_payloads().items() if dependency in descriptor.depends_on}

    try:
      payload = await asyncio.wait_for(
        self._generator.generate(idea_text=session.idea_text, domain_hint=session.domain_hint, tone_preference=session.tone_preference, module_id=module_id, prior=prior),
        timeout=self._module_timeout_seconds,
      )
    except asyncio.CancelledError:
      # Hosting task torn down (shutdown); leave no module in progress.
      await asyncio.shield(self._store.update_module(job.session_id, module_id, Fail(INTERRUPTED_ERROR)))
      raise
    except TimeoutError:
      logger.warning("Module %s for session %s timed out after %.0fs", module_id, job.session_id, self._module_timeout_seconds)
      return await self._store.update_module(job.session_id, module_id, Fail(f"timeout: no response within {self._module_timeout_seconds:.0f}s"))
    except ProviderError as exc:
      logger.warning("Module %s for session %s failed: [%s] %s", module_id, job.session_id, exc.code, exc.message)
      return await self._store.update_module(job.session_id, module_id, Fail(f"{exc.code}: {exc.message}"))
    except Exception as exc:  # noqa: BLE001
      logger.exception("Unexpected error generating module %s for session %s", module_id, job.session_id)
      return await self._store.update_module(job.session_id, module_id, Fail(f"internal_error: {exc}"))

    if not isinstance(payload, dict):
      return await self._store.update_module(job.session_id, module_id, Fail("invalid_payload: generator returned a non-object payload"))

    record = await self._store.update_module(job.session_id, module_id, Succeed(payload))
    logger.info("Module %s for session %s done", module_id, job.session_id)
    return record
