from __future__ import annotations

import asyncio

import pytest

from ideaforge.generation.errors import AlreadyInProgressError, AlreadyRunningError, NotFoundError, ValidationError
from ideaforge.generation.models import Begin, Succeed
from ideaforge.storage.memory_sessions_repo import InMemorySessionStore

MODULES = ["refined_concept", "brand_profile", "market_analysis"]


@pytest.mark.anyio
async def test_create_initializes_every_module_pending() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", "Edtech", "Friendly", owner_id="owner-1")

  assert session.status == "created"
  assert list(session.modules) == MODULES
  assert all(record.state == "pending" and record.attempts == 0 for record in session.modules.values())
  assert session.owner_id == "owner-1"


@pytest.mark.anyio
async def test_create_rejects_short_idea() -> None:
  store = InMemorySessionStore(MODULES)
  with pytest.raises(ValidationError):
    await store.create("tiny", None, None, owner_id="owner-1")


@pytest.mark.anyio
async def test_read_returns_detached_copy() -> None:
  store = InMemorySessionStore(MODULES)
  created = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")
  snapshot = await store.read(created.session_id)
  snapshot.modules["refined_concept"].state = "done"

  assert (await store.read(created.session_id)).modules["refined_concept"].state == "pending"


@pytest.mark.anyio
async def test_read_unknown_session_raises_not_found() -> None:
  store = InMemorySessionStore(MODULES)
  with pytest.raises(NotFoundError):
    await store.read("missing")


@pytest.mark.anyio
async def test_update_module_persists_payload() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")
  await store.update_module(session.session_id, "refined_concept", Begin())
  record = await store.update_module(session.session_id, "refined_concept", Succeed({"problem_summary": "x"}))

  assert record.state == "done"
  stored = await store.read(session.session_id)
  assert stored.modules["refined_concept"].payload == {"problem_summary": "x"}


@pytest.mark.anyio
async def test_concurrent_begin_admits_one_module() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")

  results = await asyncio.gather(
    store.update_module(session.session_id, "refined_concept", Begin()),
    store.update_module(session.session_id, "brand_profile", Begin()),
    return_exceptions=True,
  )

  assert sum(1 for result in results if isinstance(result, AlreadyInProgressError)) == 1
  stored = await store.read(session.session_id)
  assert sum(1 for record in stored.modules.values() if record.state == "in_progress") == 1


@pytest.mark.anyio
async def test_begin_run_twice_is_rejected() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")
  await store.begin_run(session.session_id)

  with pytest.raises(AlreadyRunningError):
    await store.begin_run(session.session_id)

  ended = await store.end_run(session.session_id, cancelled=True)
  assert ended.status == "failed"
  assert ended.cancelled is True


@pytest.mark.anyio
async def test_list_by_owner_is_newest_first_and_limited() -> None:
  store = InMemorySessionStore(MODULES)
  ids = []
  for index in range(4):
    created = await store.create(f"A marketplace for local tutors #{index}", None, None, owner_id="owner-1")
    ids.append(created.session_id)
  await store.create("Somebody else's big idea", None, None, owner_id="owner-2")

  listed = await store.list_by_owner("owner-1", limit=3)

  assert [session.session_id for session in listed] == list(reversed(ids))[:3]
  assert all(session.owner_id == "owner-1" for session in listed)


@pytest.mark.anyio
async def test_delete_is_idempotent() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")

  assert await store.delete(session.session_id) is True
  assert await store.delete(session.session_id) is False
  with pytest.raises(NotFoundError):
    await store.read(session.session_id)


@pytest.mark.anyio
async def test_recover_interrupted_fails_stale_modules() -> None:
  store = InMemorySessionStore(MODULES)
  session = await store.create("A marketplace for local tutors", None, None, owner_id="owner-1")
  untouched = await store.create("Another idea that is fine", None, None, owner_id="owner-1")
  await store.begin_run(session.session_id)
  await store.update_module(session.session_id, "refined_concept", Begin())
  await store.update_module(session.session_id, "refined_concept", Succeed({"ok": True}))
  await store.update_module(session.session_id, "brand_profile", Begin())

  assert await store.recover_interrupted() == 1

  recovered = await store.read(session.session_id)
  assert recovered.modules["brand_profile"].state == "failed"
  assert recovered.modules["brand_profile"].error == "interrupted"
  assert recovered.run_active is False
  assert recovered.status == "partial"
  assert (await store.read(untouched.session_id)).status == "created"
