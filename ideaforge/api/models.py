from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from ideaforge.generation.models import ModuleState, SessionStatus


class CreateSessionRequest(BaseModel):
  """Request payload for creating an idea session."""

  idea_text: StrictStr = Field(description="Free-form product idea.", examples=["A marketplace for local tutors"])
  domain_hint: StrictStr | None = Field(default=None, description="Industry domain; defaults to General.", examples=["Edtech"])
  tone_preference: StrictStr | None = Field(default=None, description="Brand tone; defaults to Professional.", examples=["Friendly"])
  model_config = ConfigDict(extra="forbid")


class CreateSessionResponse(BaseModel):
  session_id: StrictStr


class ModuleRecordResponse(BaseModel):
  """One generated module as seen by the client."""

  module_id: StrictStr
  state: ModuleState
  payload: dict[str, Any] | None = None
  error: StrictStr | None = None
  attempts: int = 0
  updated_at: StrictStr | None = None


class SessionResponse(BaseModel):
  """Session snapshot returned by the polling endpoint."""

  session_id: StrictStr
  idea_text: StrictStr
  domain_hint: StrictStr
  tone_preference: StrictStr
  status: SessionStatus
  modules: list[ModuleRecordResponse]
  created_at: StrictStr
  updated_at: StrictStr
  completed_at: StrictStr | None = None
  interrupted: bool = Field(default=False, description="True when the most recent run was cancelled by the user.")
  generating: bool = Field(default=False, description="True while a run or regeneration is in flight.")
  missing_modules: list[StrictStr] = Field(default_factory=list, description="Core modules that are not done.")


class SessionSummaryResponse(BaseModel):
  """Compact history entry."""

  session_id: StrictStr
  idea_text: StrictStr
  domain_hint: StrictStr
  status: SessionStatus
  created_at: StrictStr
  done_modules: int


class SessionListResponse(BaseModel):
  sessions: list[SessionSummaryResponse]


class GenerationAckResponse(BaseModel):
  """Immediate acknowledgement for start-generation."""

  session_id: StrictStr
  status: SessionStatus
  target_modules: list[StrictStr]
  started_at: StrictStr


class CancelResponse(BaseModel):
  session_id: StrictStr
  cancelled: bool


class DeleteResponse(BaseModel):
  session_id: StrictStr
  deleted: bool


class ModuleDescriptorResponse(BaseModel):
  module_id: StrictStr
  label: StrictStr
  description: StrictStr
  core: bool
  depends_on: list[StrictStr]


class ModuleListResponse(BaseModel):
  modules: list[ModuleDescriptorResponse]
