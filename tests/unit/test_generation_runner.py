from __future__ import annotations

import asyncio

import pytest

from ideaforge.generation.errors import ProviderError
from ideaforge.generation.models import GenerationJob

TUTOR_IDEA = "A marketplace for local tutors"


@pytest.mark.anyio
async def test_runner_generates_in_catalog_order_with_dependency_context(stack) -> None:
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="full", target_modules=stack.catalog.core_ids())

  summary = await stack.runner.run(job, reversed(stack.catalog.core_ids()))

  assert summary.succeeded == list(stack.catalog.core_ids())
  assert [module_id for module_id, _ in stack.generator.calls] == list(stack.catalog.core_ids())
  priors = dict(stack.generator.calls)
  assert priors["refined_concept"] == {}
  assert set(priors["pitch_deck"]) == {"refined_concept", "brand_profile", "market_analysis"}
  assert set(priors["risk_analysis"]) == {"refined_concept", "market_analysis"}
  assert priors["brand_profile"]["refined_concept"]["idea"] == TUTOR_IDEA


@pytest.mark.anyio
async def test_failed_module_does_not_stop_the_run(stack) -> None:
  stack.generator.fail("market_analysis", ProviderError("upstream said no"))
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="full", target_modules=stack.catalog.core_ids())

  summary = await stack.runner.run(job, job.target_modules)

  assert summary.failed == ["market_analysis"]
  assert len(summary.succeeded) == 7
  stored = await stack.store.read(session.session_id)
  assert stored.modules["market_analysis"].error == "provider_error: upstream said no"
  # Dependents still run, with the failed dependency absent from their context.
  assert "market_analysis" not in dict(stack.generator.calls)["risk_analysis"]


@pytest.mark.anyio
async def test_module_timeout_fails_only_that_module(make_stack) -> None:
  stack = make_stack(module_timeout_seconds=0.05)
  stack.generator.hold("brand_profile")
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="single", target_modules=("refined_concept", "brand_profile"))

  summary = await stack.runner.run(job, job.target_modules)

  assert summary.succeeded == ["refined_concept"]
  assert summary.records["brand_profile"].state == "failed"
  assert summary.records["brand_profile"].error.startswith("timeout")


@pytest.mark.anyio
async def test_unexpected_error_is_recorded_as_internal_error(stack) -> None:
  stack.generator.fail("refined_concept", RuntimeError("kaboom"))
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="single", target_modules=("refined_concept",))

  summary = await stack.runner.run(job, job.target_modules)

  assert summary.records["refined_concept"].error == "internal_error: kaboom"


@pytest.mark.anyio
async def test_cancel_flag_stops_before_next_module(stack) -> None:
  gate = stack.generator.hold("brand_profile")
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="full", target_modules=stack.catalog.core_ids())

  task = asyncio.create_task(stack.runner.run(job, job.target_modules))
  await stack.generator.started_event("brand_profile").wait()
  assert job.current_module_id == "brand_profile"
  job.cancel_requested = True
  gate.set()
  summary = await task

  assert summary.cancelled is True
  assert summary.succeeded == ["refined_concept", "brand_profile"]
  stored = await stack.store.read(session.session_id)
  assert stored.modules["market_analysis"].state == "pending"


@pytest.mark.anyio
async def test_task_cancellation_leaves_no_module_in_progress(stack) -> None:
  stack.generator.hold("refined_concept")
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  job = GenerationJob(session_id=session.session_id, mode="full", target_modules=stack.catalog.core_ids())

  task = asyncio.create_task(stack.runner.run(job, job.target_modules))
  await stack.generator.started_event("refined_concept").wait()
  task.cancel()
  with pytest.raises(asyncio.CancelledError):
    await task

  stored = await stack.store.read(session.session_id)
  assert stored.modules["refined_concept"].state == "failed"
  assert stored.modules["refined_concept"].error == "interrupted"
