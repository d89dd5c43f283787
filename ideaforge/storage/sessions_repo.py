"""Storage interface for idea sessions."""

from __future__ import annotations

from typing import Protocol

from ideaforge.generation.models import IdeaSession, ModuleRecord, ModuleTransition


class SessionStore(Protocol):
  """Repository contract for session persistence.

  Every mutating call is an atomic read-modify-write scoped to one session, so
  two writers can never interleave on the same module record.
  """

  async def create(self, idea_text: str, domain_hint: str | None, tone_preference: str | None, *, owner_id: str) -> IdeaSession:
    """Validate inputs and persist a new session with every module pending."""

  async def read(self, session_id: str) -> IdeaSession:
    """Fetch a session, raising NotFoundError when absent."""

  async def update_module(self, session_id: str, module_id: str, transition: ModuleTransition) -> ModuleRecord:
    """Apply a module transition and recompute the session status."""

  async def begin_run(self, session_id: str, *, reset_cancelled: bool = True) -> IdeaSession:
    """Mark a run active, raising AlreadyRunningError when one already is."""

  async def end_run(self, session_id: str, *, cancelled: bool) -> IdeaSession:
    """Close the active run and record whether the user interrupted it."""

  async def delete(self, session_id: str) -> bool:
    """Remove a session; return False when it was already gone."""

  async def list_by_owner(self, owner_id: str, *, limit: int) -> list[IdeaSession]:
    """Return the owner's sessions, newest first."""

  async def recover_interrupted(self) -> int:
    """Fail modules left in progress by a previous process; return the number of sessions fixed."""
