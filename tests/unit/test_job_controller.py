from __future__ import annotations

import asyncio

import pytest

from ideaforge.generation.errors import AlreadyInProgressError, AlreadyRunningError, NotFoundError, ProviderError
from ideaforge.generation.models import GenerationJob

TUTOR_IDEA = "A marketplace for local tutors"


async def _new_session(stack) -> str:
  session = await stack.store.create(TUTOR_IDEA, "Edtech", "Friendly", owner_id="owner-1")
  return session.session_id


@pytest.mark.anyio
async def test_full_run_completes_every_core_module(stack) -> None:
  session_id = await _new_session(stack)

  job = await stack.controller.start(session_id)
  assert (await stack.controller.status(session_id)).status == "processing"
  await stack.controller.join(session_id)

  session = await stack.controller.status(session_id)
  assert job.target_modules == stack.catalog.core_ids()
  assert session.status == "completed"
  assert session.completed_at is not None
  assert all(record.state == "done" for record in session.modules.values())
  assert stack.controller.active_job(session_id) is None


@pytest.mark.anyio
async def test_provider_failures_yield_partial_session(stack) -> None:
  stack.generator.fail("market_analysis", ProviderError("rate limited", code="quota_exhausted", retryable=True))
  stack.generator.fail("risk_analysis", ProviderError("rate limited", code="quota_exhausted", retryable=True))
  session_id = await _new_session(stack)

  await stack.controller.start(session_id)
  await stack.controller.join(session_id)

  session = await stack.controller.status(session_id)
  assert session.status == "partial"
  assert sorted(module_id for module_id, record in session.modules.items() if record.state == "failed") == ["market_analysis", "risk_analysis"]
  assert len(session.done_payloads()) == 6
  assert session.modules["market_analysis"].error.startswith("quota_exhausted")


@pytest.mark.anyio
async def test_concurrent_starts_admit_exactly_one(stack) -> None:
  session_id = await _new_session(stack)

  results = await asyncio.gather(*(stack.controller.start(session_id) for _ in range(5)), return_exceptions=True)

  assert sum(1 for result in results if isinstance(result, GenerationJob)) == 1
  assert sum(1 for result in results if isinstance(result, AlreadyRunningError)) == 4
  await stack.controller.join(session_id)
  session = await stack.controller.status(session_id)
  assert all(record.attempts == 1 for record in session.modules.values())


@pytest.mark.anyio
async def test_start_while_processing_is_rejected(stack) -> None:
  gate = stack.generator.hold("refined_concept")
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)

  with pytest.raises(AlreadyRunningError):
    await stack.controller.start(session_id)

  gate.set()
  await stack.controller.join(session_id)


@pytest.mark.anyio
async def test_start_unknown_session_releases_slot(stack) -> None:
  with pytest.raises(NotFoundError):
    await stack.controller.start("missing")
  assert stack.controller.active_job("missing") is None


@pytest.mark.anyio
async def test_cancel_without_job_is_a_no_op(stack) -> None:
  session_id = await _new_session(stack)

  assert stack.controller.cancel(session_id) is False
  assert (await stack.controller.status(session_id)).status == "created"


@pytest.mark.anyio
async def test_cancel_before_first_module_fails_session(stack) -> None:
  session_id = await _new_session(stack)

  await stack.controller.start(session_id)
  assert stack.controller.cancel(session_id) is True
  await stack.controller.join(session_id)

  session = await stack.controller.status(session_id)
  assert session.status == "failed"
  assert session.cancelled is True
  assert stack.generator.calls == []


@pytest.mark.anyio
async def test_cancel_mid_run_keeps_finished_modules(stack) -> None:
  gate = stack.generator.hold("brand_profile")
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  await stack.generator.started_event("brand_profile").wait()

  stack.controller.cancel(session_id)
  gate.set()
  await stack.controller.join(session_id)

  session = await stack.controller.status(session_id)
  assert session.status == "partial"
  assert session.cancelled is True
  assert set(session.done_payloads()) == {"refined_concept", "brand_profile"}
  assert session.missing_modules(stack.catalog.core_ids()) == ["market_analysis", "code_preview", "business_model", "risk_analysis", "pitch_deck", "landing_content"]


@pytest.mark.anyio
async def test_regenerate_running_module_is_rejected_without_losing_update(stack) -> None:
  gate = stack.generator.hold("market_analysis")
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  await stack.generator.started_event("market_analysis").wait()

  with pytest.raises(AlreadyInProgressError):
    await stack.controller.regenerate(session_id, "market_analysis")
  with pytest.raises(AlreadyRunningError):
    await stack.controller.regenerate(session_id, "refined_concept")

  gate.set()
  await stack.controller.join(session_id)
  session = await stack.controller.status(session_id)
  assert session.modules["market_analysis"].state == "done"
  assert session.modules["market_analysis"].attempts == 1
  assert session.modules["refined_concept"].attempts == 1


@pytest.mark.anyio
async def test_regenerate_repairs_partial_session(stack) -> None:
  stack.generator.fail("market_analysis", ProviderError("busy"))
  stack.generator.fail("risk_analysis", ProviderError("busy"))
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  await stack.controller.join(session_id)
  stack.generator.failures.clear()

  record = await stack.controller.regenerate(session_id, "market_analysis")
  assert record.state == "done"
  assert record.attempts == 2
  assert (await stack.controller.status(session_id)).status == "partial"

  record = await stack.controller.regenerate(session_id, "risk_analysis")
  assert record.state == "done"
  assert set(stack.generator.calls[-1][1]) == {"refined_concept", "market_analysis"}

  session = await stack.controller.status(session_id)
  assert session.status == "completed"
  assert stack.controller.active_job(session_id) is None


@pytest.mark.anyio
async def test_failed_regeneration_returns_failed_record(stack) -> None:
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  await stack.controller.join(session_id)
  stack.generator.fail("pitch_deck", ProviderError("still broken"))

  record = await stack.controller.regenerate(session_id, "pitch_deck")

  assert record.state == "failed"
  assert record.payload is None
  assert record.error == "provider_error: still broken"
  assert (await stack.controller.status(session_id)).status == "partial"


@pytest.mark.anyio
async def test_regenerate_after_cancel_keeps_interrupted_flag(stack) -> None:
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  stack.controller.cancel(session_id)
  await stack.controller.join(session_id)

  record = await stack.controller.regenerate(session_id, "refined_concept")

  session = await stack.controller.status(session_id)
  assert record.state == "done"
  assert session.cancelled is True
  assert session.status == "partial"


@pytest.mark.anyio
async def test_regenerating_every_module_after_cancel_completes_session(stack) -> None:
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  stack.controller.cancel(session_id)
  await stack.controller.join(session_id)

  for module_id in stack.catalog.core_ids():
    await stack.controller.regenerate(session_id, module_id)

  session = await stack.controller.status(session_id)
  assert all(record.state == "done" for record in session.modules.values())
  assert session.status == "completed"
  assert session.cancelled is False
  assert session.missing_modules(stack.catalog.core_ids()) == []


@pytest.mark.anyio
async def test_regenerate_unknown_module_raises_not_found(stack) -> None:
  session_id = await _new_session(stack)
  with pytest.raises(NotFoundError):
    await stack.controller.regenerate(session_id, "astrology_report")
  assert stack.controller.active_job(session_id) is None


@pytest.mark.anyio
async def test_shutdown_interrupts_running_jobs(stack) -> None:
  stack.generator.hold("refined_concept")
  session_id = await _new_session(stack)
  await stack.controller.start(session_id)
  await stack.generator.started_event("refined_concept").wait()

  await stack.controller.shutdown()

  session = await stack.controller.status(session_id)
  assert session.modules["refined_concept"].state == "failed"
  assert session.modules["refined_concept"].error == "interrupted"
  assert session.run_active is False
  assert session.status == "failed"
  assert stack.controller.active_job(session_id) is None
