"""Pure state-transition rules shared by every session store implementation."""

from __future__ import annotations

from collections.abc import Sequence

from ideaforge.generation.errors import AlreadyInProgressError, AlreadyRunningError, InvalidTransitionError, NotFoundError, ValidationError
from ideaforge.generation.models import (
  DEFAULT_DOMAIN_HINT,
  DEFAULT_TONE_PREFERENCE,
  DOMAIN_HINTS,
  INTERRUPTED_ERROR,
  TONE_PREFERENCES,
  Begin,
  Fail,
  IdeaSession,
  ModuleRecord,
  ModuleTransition,
  Succeed,
  derive_status,
  now_iso,
)


def normalize_inputs(idea_text: str, domain_hint: str | None, tone_preference: str | None, *, min_chars: int, max_chars: int) -> tuple[str, str, str]:
  """Validate and normalize creation inputs, raising ValidationError on bad input."""
  text = (idea_text or "").strip()
  if not text:
    raise ValidationError("Idea text is required.")
  if len(text) < min_chars:
    raise ValidationError(f"Idea must be at least {min_chars} characters.")
  if len(text) > max_chars:
    raise ValidationError(f"Idea must be at most {max_chars} characters.")

  domain = (domain_hint or "").strip() or DEFAULT_DOMAIN_HINT
  if domain not in DOMAIN_HINTS:
    raise ValidationError(f"Invalid domain. Must be one of: {', '.join(DOMAIN_HINTS)}")

  tone = (tone_preference or "").strip() or DEFAULT_TONE_PREFERENCE
  if tone not in TONE_PREFERENCES:
    raise ValidationError(f"Invalid tone. Must be one of: {', '.join(TONE_PREFERENCES)}")

  return text, domain, tone


def new_session(session_id: str, owner_id: str, idea_text: str, domain_hint: str, tone_preference: str, module_ids: Sequence[str]) -> IdeaSession:
  timestamp = now_iso()
  return IdeaSession(
    session_id=session_id,
    owner_id=owner_id,
    idea_text=idea_text,
    domain_hint=domain_hint,
    tone_preference=tone_preference,
    status="created",
    modules={module_id: ModuleRecord(module_id=module_id, updated_at=timestamp) for module_id in module_ids},
    created_at=timestamp,
    updated_at=timestamp,
  )


def refresh_status(session: IdeaSession) -> None:
  """Recompute the derived status in place and stamp completion time."""
  status = derive_status(session.modules.values(), run_active=session.run_active, run_ended=session.last_run_ended_at is not None, cancelled=session.cancelled)
  if status == "completed":
    session.cancelled = False
    if session.status != "completed":
      session.completed_at = session.updated_at
  session.status = status


def apply_transition(session: IdeaSession, module_id: str, transition: ModuleTransition) -> ModuleRecord:
  """Apply one transition to a module in place and return the updated record."""
  record = session.modules.get(module_id)
  if record is None:
    raise NotFoundError(f"Unknown module '{module_id}' for session '{session.session_id}'.")

  timestamp = now_iso()
  if isinstance(transition, Begin):
    active = session.in_progress_module()
    if active is not None:
      raise AlreadyInProgressError(f"Module '{active}' is already in progress.")
    record.state = "in_progress"
    record.payload = None
    record.error = None
    record.attempts += 1
  elif isinstance(transition, Succeed):
    if record.state != "in_progress":
      raise InvalidTransitionError(f"Cannot succeed module '{module_id}' from state '{record.state}'.")
    record.state = "done"
    record.payload = transition.payload
    record.error = None
  elif isinstance(transition, Fail):
    if record.state != "in_progress":
      raise InvalidTransitionError(f"Cannot fail module '{module_id}' from state '{record.state}'.")
    record.state = "failed"
    record.payload = None
    record.error = transition.error or "unknown error"
  else:
    raise InvalidTransitionError(f"Unsupported transition {transition!r}.")

  record.updated_at = timestamp
  session.updated_at = timestamp
  refresh_status(session)
  return record


def begin_run(session: IdeaSession, *, reset_cancelled: bool) -> None:
  if session.run_active:
    raise AlreadyRunningError(f"Session '{session.session_id}' already has an active run.")
  active = session.in_progress_module()
  if active is not None:
    raise AlreadyRunningError(f"Module '{active}' of session '{session.session_id}' is still in progress.")
  session.run_active = True
  if reset_cancelled:
    session.cancelled = False
  session.updated_at = now_iso()
  refresh_status(session)


def end_run(session: IdeaSession, *, cancelled: bool) -> None:
  timestamp = now_iso()
  session.run_active = False
  session.cancelled = session.cancelled or cancelled
  session.last_run_ended_at = timestamp
  session.updated_at = timestamp
  refresh_status(session)


def recover_session(session: IdeaSession) -> bool:
  """Fail stale in-progress modules and close a stale run; return True when anything changed."""
  changed = False
  for record in session.modules.values():
    if record.state == "in_progress":
      record.state = "failed"
      record.payload = None
      record.error = INTERRUPTED_ERROR
      record.updated_at = now_iso()
      changed = True
  if session.run_active or changed:
    end_run(session, cancelled=False)
    changed = True
  return changed
