import json
import logging
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

from ideaforge.core.exceptions import generation_exception_handler, global_exception_handler, http_exception_handler, status_for_error
from ideaforge.generation.errors import AlreadyInProgressError, AlreadyRunningError, GenerationError, InvalidTransitionError, NotFoundError, ProviderError, ValidationError


def _request(request_id: str | None = "req-1") -> MagicMock:
  request = MagicMock()
  request.state.request_id = request_id
  request.url.path = "/v1/sessions/s-1/generate"
  request.method = "POST"
  return request


@pytest.mark.parametrize(
  ("error", "expected"),
  [
    (ValidationError("bad"), 400),
    (NotFoundError("missing"), 404),
    (AlreadyRunningError("busy"), 409),
    (AlreadyInProgressError("busy"), 409),
    (InvalidTransitionError("race"), 409),
    (ProviderError("down"), 500),
    (GenerationError("other"), 500),
  ],
)
def test_status_for_error(error: GenerationError, expected: int) -> None:
  assert status_for_error(error) == expected


@pytest.mark.anyio
async def test_generation_error_body_carries_code_and_request_id() -> None:
  response = await generation_exception_handler(_request(), AlreadyRunningError("Session 's-1' is already generating."))

  assert response.status_code == 409
  assert json.loads(response.body) == {"detail": "Session 's-1' is already generating.", "code": "already_running", "requestId": "req-1"}


@pytest.mark.anyio
async def test_invalid_transition_is_logged_as_error(caplog: pytest.LogCaptureFixture) -> None:
  # uvicorn.error stops propagating once app logging is configured.
  uvicorn_logger = logging.getLogger("uvicorn.error")
  uvicorn_logger.addHandler(caplog.handler)
  try:
    response = await generation_exception_handler(_request(), InvalidTransitionError("Cannot succeed module 'x' from state 'pending'."))
  finally:
    uvicorn_logger.removeHandler(caplog.handler)

  assert response.status_code == 409
  assert any("Invalid transition" in record.getMessage() for record in caplog.records)


@pytest.mark.anyio
async def test_server_side_generation_errors_hide_details() -> None:
  response = await generation_exception_handler(_request(), ProviderError("api key leaked in message"))

  assert response.status_code == 500
  assert json.loads(response.body)["detail"] == "Internal Server Error"


@pytest.mark.anyio
async def test_global_handler_hides_details() -> None:
  response = await global_exception_handler(_request(), RuntimeError("database password"))

  assert response.status_code == 500
  assert json.loads(response.body) == {"detail": "Internal Server Error", "requestId": "req-1"}


@pytest.mark.anyio
async def test_http_exception_4xx_keeps_detail() -> None:
  response = await http_exception_handler(_request(request_id=None), HTTPException(status_code=404, detail="Not Found"))

  assert response.status_code == 404
  assert json.loads(response.body) == {"detail": "Not Found"}
