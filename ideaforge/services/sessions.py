import logging

from ideaforge.api.models import (
  CancelResponse,
  CreateSessionRequest,
  CreateSessionResponse,
  DeleteResponse,
  GenerationAckResponse,
  ModuleDescriptorResponse,
  ModuleListResponse,
  ModuleRecordResponse,
  SessionListResponse,
  SessionResponse,
  SessionSummaryResponse,
)
from ideaforge.config import Settings
from ideaforge.generation.catalog import ModuleCatalog
from ideaforge.generation.controller import JobController
from ideaforge.generation.errors import NotFoundError
from ideaforge.generation.models import TERMINAL_STATUSES, IdeaSession, ModuleRecord

logger = logging.getLogger(__name__)

_SESSION_NOT_FOUND_MSG = "Session '{session_id}' not found."


def _module_response(record: ModuleRecord) -> ModuleRecordResponse:
  return ModuleRecordResponse(module_id=record.module_id, state=record.state, payload=record.payload, error=record.error, attempts=record.attempts, updated_at=record.updated_at)


def session_response(session: IdeaSession, catalog: ModuleCatalog) -> SessionResponse:
  """Render a session snapshot, reporting missing core modules once the session settles."""
  settled = session.status in TERMINAL_STATUSES
  missing = session.missing_modules(catalog.core_ids()) if settled else []
  return SessionResponse(
    session_id=session.session_id,
    idea_text=session.idea_text,
    domain_hint=session.domain_hint,
    tone_preference=session.tone_preference,
    status=session.status,
    modules=[_module_response(record) for record in session.modules.values()],
    created_at=session.created_at,
    updated_at=session.updated_at,
    completed_at=session.completed_at,
    interrupted=session.cancelled,
    generating=session.run_active,
    missing_modules=missing,
  )


async def _owned_session(controller: JobController, session_id: str, owner_id: str) -> IdeaSession:
  """Read a session, hiding sessions that belong to another owner."""
  session = await controller.status(session_id)
  if session.owner_id != owner_id:
    raise NotFoundError(_SESSION_NOT_FOUND_MSG.format(session_id=session_id))
  return session


async def create_session(request: CreateSessionRequest, controller: JobController, owner_id: str) -> CreateSessionResponse:
  session = await controller.store.create(request.idea_text, request.domain_hint, request.tone_preference, owner_id=owner_id)
  logger.info("Created session %s for owner %s (domain=%s tone=%s)", session.session_id, owner_id, session.domain_hint, session.tone_preference)
  return CreateSessionResponse(session_id=session.session_id)


async def list_sessions(controller: JobController, settings: Settings, owner_id: str) -> SessionListResponse:
  sessions = await controller.store.list_by_owner(owner_id, limit=settings.history_limit)
  summaries = [
    SessionSummaryResponse(
      session_id=session.session_id,
      idea_text=session.idea_text,
      domain_hint=session.domain_hint,
      status=session.status,
      created_at=session.created_at,
      done_modules=len(session.done_payloads()),
    )
    for session in sessions
  ]
  return SessionListResponse(sessions=summaries)


async def get_session(session_id: str, controller: JobController, owner_id: str) -> SessionResponse:
  session = await _owned_session(controller, session_id, owner_id)
  return session_response(session, controller.catalog)


async def start_generation(session_id: str, controller: JobController, owner_id: str) -> GenerationAckResponse:
  await _owned_session(controller, session_id, owner_id)
  job = await controller.start(session_id)
  return GenerationAckResponse(session_id=session_id, status="processing", target_modules=list(job.target_modules), started_at=job.started_at)


async def cancel_generation(session_id: str, controller: JobController, owner_id: str) -> CancelResponse:
  await _owned_session(controller, session_id, owner_id)
  return CancelResponse(session_id=session_id, cancelled=controller.cancel(session_id))


async def regenerate_module(session_id: str, module_id: str, controller: JobController, owner_id: str) -> ModuleRecordResponse:
  await _owned_session(controller, session_id, owner_id)
  record = await controller.regenerate(session_id, module_id)
  return _module_response(record)


async def delete_session(session_id: str, controller: JobController, owner_id: str) -> DeleteResponse:
  try:
    await _owned_session(controller, session_id, owner_id)
  except NotFoundError:
    # Deleting an absent session succeeds.
    return DeleteResponse(session_id=session_id, deleted=False)
  controller.cancel(session_id)
  deleted = await controller.store.delete(session_id)
  logger.info("Deleted session %s for owner %s", session_id, owner_id)
  return DeleteResponse(session_id=session_id, deleted=deleted)


def list_modules(catalog: ModuleCatalog) -> ModuleListResponse:
  modules = [
    ModuleDescriptorResponse(module_id=descriptor.module_id, label=descriptor.label, description=descriptor.description, core=descriptor.core, depends_on=list(descriptor.depends_on))
    for descriptor in catalog.list_modules()
  ]
  return ModuleListResponse(modules=modules)
