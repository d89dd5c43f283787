from ideaforge.generation.models import Begin, Succeed
from ideaforge.generation.transitions import apply_transition, new_session
from ideaforge.schema.sessions import IdeaSessionRow, SessionModuleRow
from ideaforge.storage.postgres_sessions_repo import _row_to_session, _sync_row

MODULES = ["refined_concept", "brand_profile", "market_analysis"]


def _row_for(session) -> IdeaSessionRow:
  row = IdeaSessionRow(session_id=session.session_id, owner_id=session.owner_id, created_at=session.created_at, modules=[])
  # Stored out of order; position decides module order on read.
  for position, module_id in reversed(list(enumerate(session.modules))):
    row.modules.append(SessionModuleRow(module_id=module_id, position=position))
  return row


def test_sync_row_writes_every_module_field() -> None:
  session = new_session("s-1", "owner-1", "A marketplace for local tutors", "Edtech", "Friendly", MODULES)
  apply_transition(session, "refined_concept", Begin())
  apply_transition(session, "refined_concept", Succeed({"problem_summary": "x"}))
  row = _row_for(session)

  _sync_row(row, session)

  module = next(item for item in row.modules if item.module_id == "refined_concept")
  assert module.state == "done"
  assert module.payload == {"problem_summary": "x"}
  assert module.attempts == 1
  assert row.status == "completed"


def test_row_to_session_orders_modules_by_position() -> None:
  session = new_session("s-1", "owner-1", "A marketplace for local tutors", "Edtech", "Friendly", MODULES)
  row = _row_for(session)
  _sync_row(row, session)

  loaded = _row_to_session(row)

  assert list(loaded.modules) == MODULES
  assert loaded.owner_id == "owner-1"
  assert loaded.status == "created"
  assert loaded.run_active is False
