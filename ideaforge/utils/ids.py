"""Identifier utilities."""

from __future__ import annotations

import uuid


def generate_session_id() -> str:
  """Return a new idea-session identifier."""
  return str(uuid.uuid4())


def generate_request_id() -> str:
  """Return a new request identifier for log correlation."""
  return uuid.uuid4().hex
