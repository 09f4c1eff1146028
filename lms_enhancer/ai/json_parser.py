"""Lenient JSON parsing for LLM answers that wrap or slightly break their JSON."""

from __future__ import annotations

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_OPENERS = {"{": "}", "[": "]"}


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding markdown code fence."""
  return _FENCE_RE.sub("", raw.strip())


def parse_json_with_fallback(raw: str) -> Any:
  """Parse JSON, recovering from surrounding prose, code fences and trailing commas."""
  text = strip_json_fences(raw)
  try:
    return json.loads(text)
  except json.JSONDecodeError as exc:
    first_error = exc

  candidate = extract_json_block(text)
  if candidate is None:
    raise first_error

  try:
    return json.loads(candidate)
  except json.JSONDecodeError:
    pass

  # Let the error of the cleaned candidate propagate when it is still invalid.
  return json.loads(_TRAILING_COMMA_RE.sub(r"\1", candidate))


def extract_json_block(raw: str) -> str | None:
  """Return the first balanced JSON object or array found in the text."""
  start = next((index for index, char in enumerate(raw) if char in _OPENERS), None)
  if start is None:
    return None

  stack: list[str] = []
  in_string = False
  escape = False
  for index in range(start, len(raw)):
    char = raw[index]
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
    elif char in _OPENERS:
      stack.append(_OPENERS[char])
    elif stack and char == stack[-1]:
      stack.pop()
      if not stack:
        return raw[start : index + 1]

  return None
