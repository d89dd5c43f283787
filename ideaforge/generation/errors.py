"""Error taxonomy for the generation orchestration layer."""

from __future__ import annotations


class GenerationError(Exception):
  """Base class for orchestration errors surfaced to API callers."""

  code = "generation_error"

  def __init__(self, message: str, *, code: str | None = None) -> None:
    super().__init__(message)
    self.message = message
    if code is not None:
      self.code = code


class ValidationError(GenerationError):
  """Input rejected at session creation."""

  code = "validation_error"


class NotFoundError(GenerationError):
  """Unknown session or module identifier."""

  code = "not_found"


class InvalidTransitionError(GenerationError):
  """Illegal module state transition; indicates a race or a programming bug."""

  code = "invalid_transition"


class AlreadyRunningError(GenerationError):
  """A generation job already holds the session."""

  code = "already_running"


class AlreadyInProgressError(GenerationError):
  """The module (or another module of the session) is already being generated."""

  code = "already_in_progress"


class ProviderError(GenerationError):
  """Content provider failure; recorded per module and never escalated."""

  code = "provider_error"

  def __init__(self, message: str, *, code: str = "provider_error", retryable: bool = False) -> None:
    super().__init__(message, code=code)
    self.retryable = retryable
