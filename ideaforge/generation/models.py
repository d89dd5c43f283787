"""Domain models for idea sessions and their generated modules."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

SessionStatus = Literal["created", "processing", "completed", "partial", "failed"]
ModuleState = Literal["pending", "in_progress", "done", "failed"]
JobMode = Literal["full", "single"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "partial", "failed"})

DOMAIN_HINTS: tuple[str, ...] = ("SaaS", "Fintech", "Edtech", "Healthtech", "E-commerce", "Marketplace", "Consumer App", "B2B", "AI/ML", "General")
DEFAULT_DOMAIN_HINT = "General"
TONE_PREFERENCES: tuple[str, ...] = ("Professional", "Casual", "Playful", "Bold", "Luxury", "Friendly", "Technical", "Minimalist")
DEFAULT_TONE_PREFERENCE = "Professional"

INTERRUPTED_ERROR = "interrupted"


def now_iso() -> str:
  """Return a lexicographically sortable UTC timestamp."""
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclass
class ModuleRecord:
  """Represents one generated module of a session."""

  module_id: str
  state: ModuleState = "pending"
  payload: dict[str, Any] | None = None
  error: str | None = None
  attempts: int = 0
  updated_at: str | None = None


@dataclass
class IdeaSession:
  """Durable record of one idea-generation session."""

  session_id: str
  owner_id: str
  idea_text: str
  domain_hint: str
  tone_preference: str
  status: SessionStatus
  modules: dict[str, ModuleRecord]
  created_at: str
  updated_at: str
  run_active: bool = False
  cancelled: bool = False
  last_run_ended_at: str | None = None
  completed_at: str | None = None

  def done_payloads(self) -> dict[str, dict[str, Any]]:
    """Return payloads of modules that finished successfully."""
    return {module_id: record.payload for module_id, record in self.modules.items() if record.state == "done" and record.payload is not None}

  def in_progress_module(self) -> str | None:
    for module_id, record in self.modules.items():
      if record.state == "in_progress":
        return module_id
    return None

  def missing_modules(self, module_ids: Iterable[str]) -> list[str]:
    """Return the given modules that are not done, preserving order."""
    return [module_id for module_id in module_ids if module_id in self.modules and self.modules[module_id].state != "done"]


@dataclass(frozen=True)
class Begin:
  """Mark a module in progress."""


@dataclass(frozen=True)
class Succeed:
  """Store a generated payload."""

  payload: dict[str, Any]


@dataclass(frozen=True)
class Fail:
  """Record a module failure."""

  error: str


ModuleTransition = Begin | Succeed | Fail


@dataclass
class GenerationJob:
  """Ephemeral in-memory handle for a running generation."""

  session_id: str
  mode: JobMode
  target_modules: tuple[str, ...]
  started_at: str = field(default_factory=now_iso)
  cancel_requested: bool = False
  current_module_id: str | None = None
  task: asyncio.Task | None = field(default=None, repr=False)


def derive_status(modules: Iterable[ModuleRecord], *, run_active: bool, run_ended: bool, cancelled: bool) -> SessionStatus:
  """Compute the overall session status from module states and run bookkeeping."""
  records = list(modules)
  if run_active or any(record.state == "in_progress" for record in records):
    return "processing"

  done = sum(1 for record in records if record.state == "done")
  failed = sum(1 for record in records if record.state == "failed")
  pending = sum(1 for record in records if record.state == "pending")

  if done == 0 and failed == 0:
    # Nothing attempted; a run that ended this way was cancelled before its first module.
    return "failed" if run_ended else "created"

  # A cancel only leaves work missing while some module is still pending.
  if failed == 0 and (not cancelled or pending == 0):
    return "completed"

  if done > 0:
    return "partial"

  return "failed"
