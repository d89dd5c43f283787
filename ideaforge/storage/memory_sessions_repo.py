"""In-process session store used when no database is configured."""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Sequence

from ideaforge.generation import transitions
from ideaforge.generation.errors import NotFoundError
from ideaforge.generation.models import IdeaSession, ModuleRecord, ModuleTransition
from ideaforge.utils.ids import generate_session_id


class InMemorySessionStore:
  """Dict-backed store guarded by one asyncio lock per session.

  Reads return deep copies so callers never observe a record mid-mutation.
  """

  def __init__(self, module_ids: Sequence[str], *, min_chars: int = 10, max_chars: int = 5000) -> None:
    self._module_ids = tuple(module_ids)
    self._min_chars = min_chars
    self._max_chars = max_chars
    self._sessions: dict[str, IdeaSession] = {}
    self._locks: dict[str, asyncio.Lock] = {}

  def _lock_for(self, session_id: str) -> asyncio.Lock:
    lock = self._locks.get(session_id)
    if lock is None:
      lock = asyncio.Lock()
      self._locks[session_id] = lock
    return lock

  def _get(self, session_id: str) -> IdeaSession:
    session = self._sessions.get(session_id)
    if session is None:
      raise NotFoundError(f"Session '{session_id}' not found.")
    return session

  async def create(self, idea_text: str, domain_hint: str | None, tone_preference: str | None, *, owner_id: str) -> IdeaSession:
    text, domain, tone = transitions.normalize_inputs(idea_text, domain_hint, tone_preference, min_chars=self._min_chars, max_chars=self._max_chars)
    session = transitions.new_session(generate_session_id(), owner_id, text, domain, tone, self._module_ids)
    self._sessions[session.session_id] = session
    return copy.deepcopy(session)

  async def read(self, session_id: str) -> IdeaSession:
    return copy.deepcopy(self._get(session_id))

  async def update_module(self, session_id: str, module_id: str, transition: ModuleTransition) -> ModuleRecord:
    async with self._lock_for(session_id):
      session = self._get(session_id)
      working = copy.deepcopy(session)
      record = transitions.apply_transition(working, module_id, transition)
      self._sessions[session_id] = working
      return copy.deepcopy(record)

  async def begin_run(self, session_id: str, *, reset_cancelled: bool = True) -> IdeaSession:
    async with self._lock_for(session_id):
      working = copy.deepcopy(self._get(session_id))
      transitions.begin_run(working, reset_cancelled=reset_cancelled)
      self._sessions[session_id] = working
      return copy.deepcopy(working)

  async def end_run(self, session_id: str, *, cancelled: bool) -> IdeaSession:
    async with self._lock_for(session_id):
      working = copy.deepcopy(self._get(session_id))
      transitions.end_run(working, cancelled=cancelled)
      self._sessions[session_id] = working
      return copy.deepcopy(working)

  async def delete(self, session_id: str) -> bool:
    async with self._lock_for(session_id):
      removed = self._sessions.pop(session_id, None) is not None
    self._locks.pop(session_id, None)
    return removed

  async def list_by_owner(self, owner_id: str, *, limit: int) -> list[IdeaSession]:
    # Newest insertions first so equal timestamps still list newest first.
    owned = [session for session in reversed(self._sessions.values()) if session.owner_id == owner_id]
    owned.sort(key=lambda session: session.created_at, reverse=True)
    return [copy.deepcopy(session) for session in owned[:limit]]

  async def recover_interrupted(self) -> int:
    recovered = 0
    for session_id in list(self._sessions):
      async with self._lock_for(session_id):
        session = self._sessions.get(session_id)
        if session is not None and transitions.recover_session(session):
          recovered += 1
    return recovered
