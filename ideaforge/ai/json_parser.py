"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import re
from typing import Any

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def strip_json_fences(raw: str) -> str:
  """Remove markdown code fences wrapped around a JSON payload."""
  return _FENCE_RE.sub("", raw.strip()).strip()


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON with minimal recovery to keep LLM retries low."""
  text = strip_json_fences(raw)

  # Prefer strict parsing so valid JSON is preserved without mutation.
  try:
    return json.loads(text)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Extract the first JSON object/array to ignore leading or trailing prose.
  candidate = _extract_json_block(text)
  if candidate is None:
    raise last_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError as exc:
    last_error = exc

  # Strip trailing commas that commonly appear in LLM output.
  try:
    return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))
  except json.JSONDecodeError:
    raise last_error from None


def parse_json_object(raw: str) -> dict[str, Any]:
  """Parse an LLM response that must be a JSON object."""
  parsed = parse_json_with_fallback(raw)
  if not isinstance(parsed, dict):
    raise json.JSONDecodeError(f"Expected a JSON object, got {type(parsed).__name__}", raw, 0)
  return parsed


def _extract_json_block(raw: str) -> str | None:
  """Locate the first balanced JSON object/array."""
  start_index: int | None = None
  depth = 0
  in_string = False
  escape = False

  for index, char in enumerate(raw):
    if start_index is None:
      if char in "{[":
        start_index = index
        depth = 1
      continue

    if in_string:
      if escape:
        escape = False
      elif char == "\\":
        escape = True
      elif char == '"':
        in_string = False
      continue

    if char == '"':
      in_string = True
    elif char in "{[":
      depth += 1
    elif char in "}]":
      depth -= 1
      if depth == 0:
        return raw[start_index : index + 1]

  return None
