"""Client-side polling loop for the generation API."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx

from ideaforge.generation.models import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0


@dataclass
class PollResult:
  """Final snapshot observed by the poller."""

  session: dict[str, Any]
  cancelled: bool = False
  missing_modules: list[str] = field(default_factory=list)

  @property
  def status(self) -> str:
    return str(self.session.get("status"))

  @property
  def done_modules(self) -> dict[str, dict[str, Any]]:
    return {module["module_id"]: module.get("payload") or {} for module in self.session.get("modules", []) if module.get("state") == "done"}


class ClientPoller:
  """Start a generation run and poll until it settles.

  Cancellation stops local waiting immediately, then signals the server on a
  best-effort basis and harvests whatever modules were already saved.
  """

  def __init__(self, client: httpx.AsyncClient, *, poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS, owner_id: str | None = None) -> None:
    self._client = client
    self._poll_interval_seconds = poll_interval_seconds
    self._headers = {"X-Owner-Id": owner_id} if owner_id else {}
    self._cancel_event = asyncio.Event()
    self._loading = False
    self._core_modules: list[str] | None = None

  @property
  def loading(self) -> bool:
    return self._loading

  async def create_session(self, idea_text: str, domain_hint: str | None = None, tone_preference: str | None = None) -> str:
    response = await self._client.post("/v1/sessions", json={"idea_text": idea_text, "domain_hint": domain_hint, "tone_preference": tone_preference}, headers=self._headers)
    response.raise_for_status()
    return response.json()["session_id"]

  async def get_status(self, session_id: str) -> dict[str, Any]:
    response = await self._client.get(f"/v1/sessions/{session_id}", headers=self._headers)
    response.raise_for_status()
    return response.json()

  async def regenerate(self, session_id: str, module_id: str) -> dict[str, Any]:
    response = await self._client.post(f"/v1/sessions/{session_id}/regenerate/{module_id}", headers=self._headers)
    response.raise_for_status()
    return response.json()

  async def core_modules(self) -> list[str] | None:
    """Return the ids of modules that full runs generate, or None when the catalog is unreachable."""
    if self._core_modules is None:
      try:
        response = await self._client.get("/v1/modules", headers=self._headers)
        response.raise_for_status()
      except httpx.HTTPError as exc:
        logger.warning("Module catalog request failed: %s", exc)
        return None
      self._core_modules = [module["module_id"] for module in response.json().get("modules", []) if module.get("core")]
    return self._core_modules

  async def run(self, session_id: str, *, deadline_seconds: float | None = None) -> PollResult:
    """Start generation and poll until a terminal status or a cancel."""
    self._cancel_event.clear()
    self._loading = True
    try:
      response = await self._client.post(f"/v1/sessions/{session_id}/generate", headers=self._headers)
      response.raise_for_status()

      started = time.monotonic()
      while True:
        try:
          snapshot = await self.get_status(session_id)
        except httpx.TransportError as exc:
          # Transient; the next tick tries again.
          logger.warning("Status poll for session %s failed: %s", session_id, exc)
        else:
          if snapshot.get("status") in TERMINAL_STATUSES and not snapshot.get("generating", False):
            return PollResult(session=snapshot, cancelled=False, missing_modules=list(snapshot.get("missing_modules", [])))

        if deadline_seconds is not None and time.monotonic() - started >= deadline_seconds:
          logger.warning("Generation for session %s exceeded %.0fs; cancelling", session_id, deadline_seconds)
          self._cancel_event.set()

        if self._cancel_event.is_set() or await self._wait_for_cancel():
          return await self._harvest(session_id)
    finally:
      self._loading = False

  def cancel(self) -> None:
    """Stop waiting now; the run loop signals the server and harvests results."""
    self._loading = False
    self._cancel_event.set()

  async def _wait_for_cancel(self) -> bool:
    try:
      await asyncio.wait_for(self._cancel_event.wait(), timeout=self._poll_interval_seconds)
    except TimeoutError:
      return False
    return True

  async def _harvest(self, session_id: str) -> PollResult:
    self._loading = False
    try:
      response = await self._client.post(f"/v1/sessions/{session_id}/cancel", headers=self._headers)
      response.raise_for_status()
    except httpx.HTTPError as exc:
      # The final read below still shows everything that was saved.
      logger.warning("Cancel request for session %s failed: %s", session_id, exc)

    snapshot = await self.get_status(session_id)
    missing = list(snapshot.get("missing_modules") or [])
    if not missing:
      # The server only reports missing modules once the run has settled.
      core = await self.core_modules()
      missing = [module["module_id"] for module in snapshot.get("modules", []) if module.get("state") != "done" and (core is None or module["module_id"] in core)]
    return PollResult(session=snapshot, cancelled=True, missing_modules=missing)
