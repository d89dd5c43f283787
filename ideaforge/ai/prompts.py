"""Prompt templates for each generated module."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from ideaforge.generation.errors import NotFoundError


@dataclass(frozen=True)
class PromptTemplate:
  """Instruction text plus the JSON shape the model must return."""

  role: str
  task: str
  schema: str
  context_labels: dict[str, str]


_CONTEXT_LABELS = {
  "refined_concept": "Product Concept",
  "brand_profile": "Brand Profile",
  "market_analysis": "Market Analysis",
}

TEMPLATES: dict[str, PromptTemplate] = {
  "refined_concept": PromptTemplate(
    role="You are an expert startup strategist and product consultant.",
    task=(
      "Refine the raw startup idea into a clear, structured concept. Extract the core problem in 1-2 sentences, "
      "define the value proposition in 1-2 sentences, identify exactly 3 target user personas, and list 4-6 concrete MVP features."
    ),
    schema='{"problem_summary": "string", "solution_summary": "string", "target_users": ["string"], "core_features": ["string"]}',
    context_labels={},
  ),
  "brand_profile": PromptTemplate(
    role="You are a world-class brand strategist and naming expert.",
    task="Create 5 memorable name options, 3 taglines, a detailed brand voice, and a cohesive 4-color palette with hex codes.",
    schema='{"name_options": ["string"], "taglines": ["string"], "voice_tone": "string", "color_palette": [{"hex": "string", "name": "string", "usage": "string"}]}',
    context_labels=_CONTEXT_LABELS,
  ),
  "market_analysis": PromptTemplate(
    role="You are a senior market research analyst.",
    task="Estimate TAM, SAM and SOM with reasoning, analyse 3 main competitors, write a SWOT analysis, and outline a three-phase go-to-market strategy.",
    schema=(
      '{"market_size": {"tam": {"value": "string", "description": "string"}, "sam": {"value": "string", "description": "string"}, '
      '"som": {"value": "string", "description": "string"}}, "competitors": [{"name": "string", "description": "string", "strengths": "string", '
      '"weaknesses": "string"}], "swot": {"strengths": ["string"], "weaknesses": ["string"], "opportunities": ["string"], "threats": ["string"]}, '
      '"go_to_market": [{"name": "string", "duration": "string", "activities": ["string"]}]}'
    ),
    context_labels=_CONTEXT_LABELS,
  ),
  "code_preview": PromptTemplate(
    role="You are a senior software architect.",
    task="Recommend an MVP tech stack, describe the high-level architecture, write short code samples for key components, and estimate a delivery timeline.",
    schema=(
      '{"tech_stack": {"frontend": {"framework": "string", "reasoning": "string"}, "backend": {"framework": "string", "reasoning": "string"}, '
      '"database": {"type": "string", "reasoning": "string"}, "hosting": {"platform": "string", "reasoning": "string"}}, '
      '"architecture": {"description": "string", "components": [{"name": "string", "purpose": "string", "tech": "string"}]}, '
      '"code_samples": [{"title": "string", "language": "string", "code": "string"}], '
      '"timeline": {"total_weeks": 12, "phases": [{"phase": "string", "weeks": "string", "deliverables": ["string"]}]}}'
    ),
    context_labels=_CONTEXT_LABELS,
  ),
  "business_model": PromptTemplate(
    role="You are a startup business architect and financial strategist.",
    task="Identify 3 revenue streams, the cost structure split into fixed and variable costs, key partnerships, and sales channels.",
    schema=(
      '{"revenue_streams": [{"name": "string", "description": "string", "pricing_model": "string"}], '
      '"cost_structure": [{"name": "string", "type": "fixed|variable", "description": "string"}], '
      '"key_partnerships": [{"partner": "string", "rationale": "string"}], "channels": [{"channel": "string", "description": "string"}]}'
    ),
    context_labels=_CONTEXT_LABELS,
  ),
  "risk_analysis": PromptTemplate(
    role="You are a ruthless venture capital analyst.",
    task="Identify 3 critical failure modes with mitigations, give a success probability score from 0 to 100 with justification, and assess market timing.",
    schema=(
      '{"risk_score": {"score": 75, "rating": "string", "justification": "string"}, '
      '"critical_risks": [{"risk": "string", "severity": "string", "impact": "string", "mitigation": "string"}], '
      '"market_timing": {"verdict": "string", "reasoning": "string"}}'
    ),
    context_labels=_CONTEXT_LABELS,
  ),
  "pitch_deck": PromptTemplate(
    role="You are a pitch deck expert who has helped startups raise venture funding.",
    task=(
      "Create a 10-slide investor pitch deck: title, problem, solution, market, product, business model, traction, competition, team, ask. "
      "Each slide needs 3-5 bullet points and speaker notes."
    ),
    schema='{"slides": [{"number": 1, "title": "string", "headline": "string", "content": ["string"], "speaker_notes": "string"}]}',
    context_labels=_CONTEXT_LABELS,
  ),
  "landing_content": PromptTemplate(
    role="You are an expert conversion copywriter and UX designer.",
    task="Write landing page copy: a hero section, 3-4 feature blocks with an icon name, 2 pricing tiers, 3 FAQ entries, and a closing call to action.",
    schema=(
      '{"hero": {"headline": "string", "subheadline": "string", "cta_text": "string"}, '
      '"feature_blocks": [{"icon": "rocket|shield|zap|users|chart|check", "title": "string", "description": "string"}], '
      '"pricing_tiers": [{"name": "string", "price": "string", "period": "string", "features": ["string"], "cta": "string", "highlighted": true}], '
      '"faq": [{"question": "string", "answer": "string"}], "final_cta": {"headline": "string", "subtext": "string", "button_text": "string"}}'
    ),
    context_labels=_CONTEXT_LABELS,
  ),
}


def build_prompt(module_id: str, *, idea_text: str, domain_hint: str, tone_preference: str, prior: dict[str, dict[str, Any]]) -> str:
  """Render the full prompt for one module, embedding prior module payloads as context."""
  template = TEMPLATES.get(module_id)
  if template is None:
    raise NotFoundError(f"No prompt template for module '{module_id}'.")

  lines = [template.role, "", f'Raw Idea: "{idea_text}"', f'Industry Domain: "{domain_hint}"', f'Brand Tone: "{tone_preference}"']
  for context_id, label in template.context_labels.items():
    if context_id in prior:
      lines.append(f"{label}: {json.dumps(prior[context_id], indent=2)}")

  lines.extend(
    [
      "",
      template.task,
      "",
      "CRITICAL: You MUST respond with ONLY valid JSON matching this exact schema:",
      template.schema,
      "",
      "Do not include markdown, explanations, or extra text. Return ONLY raw JSON.",
    ]
  )
  return "\n".join(lines)
