import logging

from fastapi import APIRouter, Depends, Request, status

from ideaforge.api.deps import get_job_controller, get_owner_id
from ideaforge.api.models import (
  CancelResponse,
  CreateSessionRequest,
  CreateSessionResponse,
  DeleteResponse,
  GenerationAckResponse,
  ModuleRecordResponse,
  SessionListResponse,
  SessionResponse,
)
from ideaforge.config import Settings, get_settings
from ideaforge.core.rate_limit import generation_rate_limit, limiter
from ideaforge.generation.controller import JobController
from ideaforge.services import sessions as session_service

router = APIRouter()
logger = logging.getLogger("ideaforge.api.routes.sessions")


@router.post("", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(  # noqa: B008
  request: CreateSessionRequest,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> CreateSessionResponse:
  """Create an idea session with every module pending."""
  return await session_service.create_session(request, controller, owner_id)


@router.get("", response_model=SessionListResponse)
async def list_sessions(  # noqa: B008
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  settings: Settings = Depends(get_settings),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> SessionListResponse:
  """List the caller's most recent sessions."""
  return await session_service.list_sessions(controller, settings, owner_id)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(  # noqa: B008
  session_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> SessionResponse:
  """Poll the current session snapshot."""
  return await session_service.get_session(session_id, controller, owner_id)


@router.get("/{session_id}/core_outputs", response_model=SessionResponse)
async def get_core_outputs(  # noqa: B008
  session_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> SessionResponse:
  """Legacy alias of the polling endpoint."""
  return await session_service.get_session(session_id, controller, owner_id)


@router.post("/{session_id}/generate", response_model=GenerationAckResponse, status_code=status.HTTP_202_ACCEPTED)
@limiter.shared_limit(generation_rate_limit, scope="generation")
async def start_generation(  # noqa: B008
  request: Request,
  session_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> GenerationAckResponse:
  """Start generating every core module in the background."""
  return await session_service.start_generation(session_id, controller, owner_id)


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_generation(  # noqa: B008
  session_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> CancelResponse:
  """Request cancellation of the active run; succeeds even when nothing is running."""
  return await session_service.cancel_generation(session_id, controller, owner_id)


@router.post("/{session_id}/regenerate/{module_id}", response_model=ModuleRecordResponse)
@limiter.shared_limit(generation_rate_limit, scope="generation")
async def regenerate_module(  # noqa: B008
  request: Request,
  session_id: str,
  module_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> ModuleRecordResponse:
  """Regenerate a single module and return its updated record."""
  return await session_service.regenerate_module(session_id, module_id, controller, owner_id)


@router.delete("/{session_id}", response_model=DeleteResponse)
async def delete_session(  # noqa: B008
  session_id: str,
  controller: JobController = Depends(get_job_controller),  # noqa: B008
  owner_id: str = Depends(get_owner_id),  # noqa: B008
) -> DeleteResponse:
  """Delete a session; deleting an unknown session is not an error."""
  return await session_service.delete_session(session_id, controller, owner_id)
