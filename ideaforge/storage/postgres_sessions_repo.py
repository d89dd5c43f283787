"""Postgres-backed session store using SQLAlchemy."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import TypeVar

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ideaforge.core.database import get_session_factory
from ideaforge.generation import transitions
from ideaforge.generation.errors import NotFoundError
from ideaforge.generation.models import IdeaSession, ModuleRecord, ModuleTransition
from ideaforge.schema.sessions import IdeaSessionRow, SessionModuleRow
from ideaforge.utils.ids import generate_session_id

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PostgresSessionStore:
  """Persist sessions and module records to Postgres.

  Each mutation runs in one transaction holding a row lock on the session, which
  serialises writers across processes.
  """

  def __init__(self, module_ids: Sequence[str], *, min_chars: int = 10, max_chars: int = 5000, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
    self._module_ids = tuple(module_ids)
    self._min_chars = min_chars
    self._max_chars = max_chars
    self._session_factory = session_factory or get_session_factory()
    if self._session_factory is None:
      raise RuntimeError("Database not initialized")

  async def create(self, idea_text: str, domain_hint: str | None, tone_preference: str | None, *, owner_id: str) -> IdeaSession:
    text, domain, tone = transitions.normalize_inputs(idea_text, domain_hint, tone_preference, min_chars=self._min_chars, max_chars=self._max_chars)
    session = transitions.new_session(generate_session_id(), owner_id, text, domain, tone, self._module_ids)
    async with self._session_factory() as db:
      row = IdeaSessionRow(session_id=session.session_id, owner_id=owner_id, created_at=session.created_at, modules=[])
      for position, module_id in enumerate(session.modules):
        row.modules.append(SessionModuleRow(module_id=module_id, position=position))
      _sync_row(row, session)
      db.add(row)
      await db.commit()
    return session

  async def read(self, session_id: str) -> IdeaSession:
    async with self._session_factory() as db:
      row = await db.get(IdeaSessionRow, session_id)
      if row is None:
        raise NotFoundError(f"Session '{session_id}' not found.")
      return _row_to_session(row)

  async def update_module(self, session_id: str, module_id: str, transition: ModuleTransition) -> ModuleRecord:
    def _apply(session: IdeaSession) -> ModuleRecord:
      return transitions.apply_transition(session, module_id, transition)

    return await self._mutate(session_id, _apply)

  async def begin_run(self, session_id: str, *, reset_cancelled: bool = True) -> IdeaSession:
    def _apply(session: IdeaSession) -> IdeaSession:
      transitions.begin_run(session, reset_cancelled=reset_cancelled)
      return session

    return await self._mutate(session_id, _apply)

  async def end_run(self, session_id: str, *, cancelled: bool) -> IdeaSession:
    def _apply(session: IdeaSession) -> IdeaSession:
      transitions.end_run(session, cancelled=cancelled)
      return session

    return await self._mutate(session_id, _apply)

  async def delete(self, session_id: str) -> bool:
    async with self._session_factory() as db:
      result = await db.execute(delete(IdeaSessionRow).where(IdeaSessionRow.session_id == session_id))
      await db.commit()
      return bool(result.rowcount)

  async def list_by_owner(self, owner_id: str, *, limit: int) -> list[IdeaSession]:
    async with self._session_factory() as db:
      stmt = select(IdeaSessionRow).where(IdeaSessionRow.owner_id == owner_id).order_by(IdeaSessionRow.created_at.desc()).limit(limit)
      rows = (await db.execute(stmt)).scalars().all()
      return [_row_to_session(row) for row in rows]

  async def recover_interrupted(self) -> int:
    async with self._session_factory() as db:
      stale_modules = select(SessionModuleRow.session_id).where(SessionModuleRow.state == "in_progress")
      stmt = select(IdeaSessionRow.session_id).where(or_(IdeaSessionRow.run_active.is_(True), IdeaSessionRow.session_id.in_(stale_modules)))
      session_ids = list((await db.execute(stmt)).scalars().all())

    recovered = 0
    for session_id in session_ids:
      if await self._mutate(session_id, transitions.recover_session):
        recovered += 1
    if recovered:
      logger.warning("Recovered %s session(s) left in progress by a previous process.", recovered)
    return recovered

  async def _mutate(self, session_id: str, apply: Callable[[IdeaSession], T]) -> T:
    """Lock the session row, apply a pure transition, and write the result back."""
    async with self._session_factory() as db:
      async with db.begin():
        stmt = select(IdeaSessionRow).where(IdeaSessionRow.session_id == session_id).with_for_update().execution_options(populate_existing=True)
        row = (await db.execute(stmt)).scalar_one_or_none()
        if row is None:
          raise NotFoundError(f"Session '{session_id}' not found.")
        session = _row_to_session(row)
        result = apply(session)
        _sync_row(row, session)
      return result


def _row_to_session(row: IdeaSessionRow) -> IdeaSession:
  modules = {
    module.module_id: ModuleRecord(module_id=module.module_id, state=module.state, payload=module.payload, error=module.error, attempts=module.attempts, updated_at=module.updated_at)  # type: ignore[arg-type]
    for module in sorted(row.modules, key=lambda item: item.position)
  }
  return IdeaSession(
    session_id=row.session_id,
    owner_id=row.owner_id,
    idea_text=row.idea_text,
    domain_hint=row.domain_hint,
    tone_preference=row.tone_preference,
    status=row.status,  # type: ignore[arg-type]
    modules=modules,
    created_at=row.created_at,
    updated_at=row.updated_at,
    run_active=row.run_active,
    cancelled=row.cancelled,
    last_run_ended_at=row.last_run_ended_at,
    completed_at=row.completed_at,
  )


def _sync_row(row: IdeaSessionRow, session: IdeaSession) -> None:
  row.idea_text = session.idea_text
  row.domain_hint = session.domain_hint
  row.tone_preference = session.tone_preference
  row.status = session.status
  row.run_active = session.run_active
  row.cancelled = session.cancelled
  row.last_run_ended_at = session.last_run_ended_at
  row.completed_at = session.completed_at
  row.updated_at = session.updated_at
  by_id = {module.module_id: module for module in row.modules}
  for module_id, record in session.modules.items():
    module = by_id[module_id]
    module.state = record.state
    module.payload = record.payload
    module.error = record.error
    module.attempts = record.attempts
    module.updated_at = record.updated_at
