"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Final

from google import genai
from google.genai import types

from ideaforge.ai.errors import is_rate_limited
from ideaforge.ai.providers.base import AIModel, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)

GENERATION_TEMPERATURE: Final[float] = 0.7
MAX_OUTPUT_TOKENS: Final[int] = 8192


class GeminiModel(AIModel):
  """Gemini model client returning JSON-mode text."""

  def __init__(self, name: str, client: genai.Client, *, backoff_base_seconds: float = 1.0) -> None:
    self.name: str = name
    self._client = client
    self._backoff_base_seconds = backoff_base_seconds

  async def generate(self, prompt: str) -> SimpleModelResponse:
    """Generate a JSON response from Gemini."""
    config = types.GenerateContentConfig(temperature=GENERATION_TEMPERATURE, max_output_tokens=MAX_OUTPUT_TOKENS, response_mime_type="application/json")
    # Use the async client to avoid blocking the asyncio event loop.
    response = await _with_backoff(self._client.aio.models.generate_content, model=self.name, contents=prompt, config=config, base_delay=self._backoff_base_seconds)
    logger.debug("Gemini response from %s:\n%s", self.name, response.text)

    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count, "completion_tokens": response.usage_metadata.candidates_token_count, "total_tokens": response.usage_metadata.total_token_count}
    return SimpleModelResponse(content=response.text or "", usage=usage)


class GeminiProvider(Provider):
  """Gemini provider sharing one SDK client across models."""

  def __init__(self, api_key: str | None, *, backoff_base_seconds: float = 1.0) -> None:
    if not api_key:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self.name: str = "gemini"
    self._client = genai.Client(api_key=api_key)
    self._backoff_base_seconds = backoff_base_seconds

  def get_model(self, model: str) -> AIModel:
    """Return a Gemini model client."""
    return GeminiModel(model, self._client, backoff_base_seconds=self._backoff_base_seconds)


async def _with_backoff(func, *args, base_delay: float = 1.0, retries: int = 3, **kwargs):
  """Retry 429 responses with jittered exponential backoff, re-raising on the last attempt."""
  for attempt in range(retries):
    try:
      return await func(*args, **kwargs)
    except Exception as exc:
      if not is_rate_limited(exc) or attempt == retries - 1:
        raise
      delay = base_delay * (2**attempt) + random.uniform(0, base_delay)
      logger.warning("Gemini rate limited (attempt %s/%s); retrying in %.1fs", attempt + 1, retries, delay)
      await asyncio.sleep(delay)
  raise RuntimeError("unreachable")
