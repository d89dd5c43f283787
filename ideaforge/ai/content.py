"""Content-generation capability used by the generation runner."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ideaforge.ai.errors import is_model_unavailable, is_network_error, is_rate_limited
from ideaforge.ai.json_parser import parse_json_object
from ideaforge.ai.prompts import build_prompt
from ideaforge.ai.providers.base import AIModel
from ideaforge.config import Settings
from ideaforge.generation.errors import ProviderError

logger = logging.getLogger(__name__)

MAX_JSON_RETRIES = 2
MAX_NETWORK_RETRIES = 3
QUOTA_EXHAUSTED_MESSAGE = "Content Generation quota exhausted. Please try again later."


class ContentGenerator(Protocol):
  """Generates one module payload from the session inputs and prior module payloads."""

  async def generate(self, *, idea_text: str, domain_hint: str, tone_preference: str, module_id: str, prior: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Return the module payload or raise ProviderError."""


class GeminiContentGenerator:
  """Walk an ordered list of models, retrying malformed JSON and falling back on provider failures."""

  def __init__(self, models: Sequence[AIModel], *, network_backoff_seconds: float = 2.0) -> None:
    if not models:
      raise ValueError("At least one model is required.")
    self._models = list(models)
    self._network_backoff_seconds = network_backoff_seconds

  async def generate(self, *, idea_text: str, domain_hint: str, tone_preference: str, module_id: str, prior: dict[str, dict[str, Any]]) -> dict[str, Any]:
    prompt = build_prompt(module_id, idea_text=idea_text, domain_hint=domain_hint, tone_preference=tone_preference, prior=prior)
    last_error: Exception | None = None

    for model in self._models:
      try:
        return await self._generate_with_model(model, prompt, module_id)
      except ProviderError:
        raise
      except Exception as exc:  # noqa: BLE001
        last_error = exc
        if is_rate_limited(exc) or is_model_unavailable(exc) or is_network_error(exc) or isinstance(exc, json.JSONDecodeError):
          logger.warning("Model %s failed for %s, falling back: %s", model.name, module_id, exc)
          continue
        logger.error("Model %s failed for %s with a non-recoverable error: %s", model.name, module_id, exc)
        raise ProviderError(str(exc), code="provider_failure") from exc

    raise ProviderError(QUOTA_EXHAUSTED_MESSAGE, code="quota_exhausted", retryable=True) from last_error

  async def _generate_with_model(self, model: AIModel, prompt: str, module_id: str) -> dict[str, Any]:
    json_retries = 0
    network_retries = 0
    while True:
      try:
        response = await model.generate(prompt)
        return parse_json_object(response.content)
      except json.JSONDecodeError as exc:
        if json_retries >= MAX_JSON_RETRIES:
          raise
        json_retries += 1
        logger.warning("Invalid JSON from %s for %s, retrying same model (%s/%s): %s", model.name, module_id, json_retries, MAX_JSON_RETRIES, exc)
      except Exception as exc:
        # Rate limits were already retried inside the provider.
        if is_rate_limited(exc) or not is_network_error(exc) or network_retries >= MAX_NETWORK_RETRIES:
          raise
        delay = self._network_backoff_seconds * (2**network_retries)
        network_retries += 1
        logger.warning("Network error from %s for %s, retrying in %.1fs (%s/%s): %s", model.name, module_id, delay, network_retries, MAX_NETWORK_RETRIES, exc)
        await asyncio.sleep(delay)


class DummyContentGenerator:
  """Deterministic generator for local runs without provider credentials."""

  def __init__(self, *, delay_seconds: float = 0.0) -> None:
    self._delay_seconds = delay_seconds

  async def generate(self, *, idea_text: str, domain_hint: str, tone_preference: str, module_id: str, prior: dict[str, dict[str, Any]]) -> dict[str, Any]:
    if self._delay_seconds:
      await asyncio.sleep(self._delay_seconds)
    summary = idea_text.strip().splitlines()[0][:120]
    builders = {
      "refined_concept": lambda: {
        "problem_summary": f"{domain_hint} users lack a simple way to act on: {summary}",
        "solution_summary": f"A focused {domain_hint} product that delivers {summary.lower()}",
        "target_users": ["Early adopters", "Small teams", "Independent professionals"],
        "core_features": ["Onboarding", "Dashboard", "Payments", "Notifications"],
      },
      "brand_profile": lambda: {
        "name_options": ["Forgely", "Ideon", "Launchwise", "Brightpath", "Sparkhub"],
        "taglines": ["Ideas, shipped.", "From spark to startup.", "Build what matters."],
        "voice_tone": tone_preference,
        "color_palette": [{"hex": "#1E3A8A", "name": "Deep Blue", "usage": "primary"}],
      },
      "market_analysis": lambda: {
        "market_size": {"tam": {"value": "$10B", "description": "Global"}, "sam": {"value": "$1B", "description": "Serviceable"}, "som": {"value": "$50M", "description": "Obtainable"}},
        "competitors": [{"name": "Incumbent Inc", "description": "Market leader", "strengths": "Distribution", "weaknesses": "Slow"}],
        "swot": {"strengths": ["Focus"], "weaknesses": ["Brand"], "opportunities": ["Underserved niche"], "threats": ["Copycats"]},
        "go_to_market": [{"name": "Launch", "duration": "3 months", "activities": ["Beta program"]}],
      },
      "code_preview": lambda: {
        "tech_stack": {"frontend": {"framework": "React", "reasoning": "Ecosystem"}, "backend": {"framework": "FastAPI", "reasoning": "Async"}},
        "architecture": {"description": "Single API with a relational store", "components": [{"name": "api", "purpose": "core", "tech": "Python"}]},
        "code_samples": [],
        "timeline": {"total_weeks": 12, "phases": [{"phase": "MVP", "weeks": "1-12", "deliverables": ["Launch"]}]},
      },
      "business_model": lambda: {
        "revenue_streams": [{"name": "Subscriptions", "description": "Monthly plans", "pricing_model": "tiered"}],
        "cost_structure": [{"name": "Hosting", "type": "variable", "description": "Cloud infrastructure"}],
        "key_partnerships": [],
        "channels": [{"channel": "Content marketing", "description": "Organic acquisition"}],
      },
      "risk_analysis": lambda: {
        "risk_score": {"score": 60, "rating": "Moderate", "justification": "Unproven demand"},
        "critical_risks": [{"risk": "Low adoption", "severity": "high", "impact": "Revenue", "mitigation": "Early pilots"}],
        "market_timing": {"verdict": "Favourable", "reasoning": "Growing demand"},
      },
      "pitch_deck": lambda: {"slides": [{"number": 1, "title": "Title", "headline": summary, "content": ["Problem", "Solution", "Ask"], "speaker_notes": ""}]},
      "landing_content": lambda: {
        "hero": {"headline": summary, "subheadline": f"Built for {domain_hint}", "cta_text": "Get started"},
        "feature_blocks": [{"icon": "rocket", "title": "Fast", "description": "Launch quickly"}],
        "pricing_tiers": [],
        "faq": [],
        "final_cta": {"headline": "Ready?", "subtext": "Join the beta", "button_text": "Sign up"},
      },
    }
    builder = builders.get(module_id)
    if builder is None:
      raise ProviderError(f"No dummy payload for module '{module_id}'.", code="unknown_module")
    payload = builder()
    payload["_context_modules"] = sorted(prior)
    return payload


def build_content_generator(settings: Settings) -> ContentGenerator:
  """Build the configured content generator."""
  if settings.content_provider == "dummy":
    logger.info("Using dummy content generator.")
    return DummyContentGenerator()

  from ideaforge.ai.providers.gemini import GeminiProvider

  provider = GeminiProvider(settings.gemini_api_key)
  models = [provider.get_model(name) for name in settings.gemini_models]
  logger.info("Using Gemini content generator with models: %s", ", ".join(settings.gemini_models))
  return GeminiContentGenerator(models)
