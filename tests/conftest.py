"""Shared fixtures and test doubles for the generation service."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

# Settings are read at import time by ideaforge.main.
os.environ.setdefault("IDEAFORGE_ALLOWED_ORIGINS", "http://localhost")
os.environ["IDEAFORGE_CONTENT_PROVIDER"] = "dummy"
os.environ.pop("IDEAFORGE_PG_DSN", None)
os.environ.pop("DATABASE_URL", None)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from ideaforge.api.deps import get_catalog, get_job_controller  # noqa: E402
from ideaforge.core.rate_limit import limiter  # noqa: E402
from ideaforge.generation.catalog import ModuleCatalog  # noqa: E402
from ideaforge.generation.controller import JobController  # noqa: E402
from ideaforge.generation.runner import GenerationRunner  # noqa: E402
from ideaforge.main import app  # noqa: E402
from ideaforge.storage.memory_sessions_repo import InMemorySessionStore  # noqa: E402

TUTOR_IDEA = "A marketplace for local tutors"


class ScriptedGenerator:
  """Content generator whose per-module behaviour is set by the test."""

  def __init__(self) -> None:
    self.failures: dict[str, Exception] = {}
    self.gates: dict[str, asyncio.Event] = {}
    self.started: dict[str, asyncio.Event] = {}
    self.calls: list[tuple[str, dict[str, dict[str, Any]]]] = []

  def fail(self, module_id: str, exc: Exception) -> None:
    self.failures[module_id] = exc

  def hold(self, module_id: str) -> asyncio.Event:
    """Block the module call until the returned event is set."""
    gate = asyncio.Event()
    self.gates[module_id] = gate
    return gate

  def started_event(self, module_id: str) -> asyncio.Event:
    return self.started.setdefault(module_id, asyncio.Event())

  async def generate(self, *, idea_text: str, domain_hint: str, tone_preference: str, module_id: str, prior: dict[str, dict[str, Any]]) -> dict[str, Any]:
    self.calls.append((module_id, prior))
    self.started_event(module_id).set()
    gate = self.gates.get(module_id)
    if gate is not None:
      await gate.wait()
    failure = self.failures.get(module_id)
    if failure is not None:
      raise failure
    return {"module": module_id, "idea": idea_text, "domain": domain_hint, "tone": tone_preference}


@dataclass
class Stack:
  catalog: ModuleCatalog
  store: InMemorySessionStore
  generator: ScriptedGenerator
  runner: GenerationRunner
  controller: JobController


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def make_stack() -> Callable[..., Stack]:
  def _make(*, module_timeout_seconds: float = 5.0, on_demand: tuple[str, ...] = ()) -> Stack:
    catalog = ModuleCatalog(on_demand=on_demand)
    store = InMemorySessionStore(catalog.module_ids())
    generator = ScriptedGenerator()
    runner = GenerationRunner(store, generator, catalog, module_timeout_seconds=module_timeout_seconds)
    controller = JobController(store, runner, catalog)
    return Stack(catalog=catalog, store=store, generator=generator, runner=runner, controller=controller)

  return _make


@pytest.fixture
def stack(make_stack: Callable[..., Stack]) -> Stack:
  return make_stack()


@pytest.fixture
async def async_client(stack: Stack):
  limiter.reset()
  app.dependency_overrides[get_job_controller] = lambda: stack.controller
  app.dependency_overrides[get_catalog] = lambda: stack.catalog
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
    yield client
  app.dependency_overrides.clear()
