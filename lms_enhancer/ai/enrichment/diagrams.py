"""Mermaid diagram cleanup for generated markdown.

Enrichment rewrites markdown that may sit inside diagram fences. Mermaid rejects quotes
and markdown link syntax, so every diagram block is normalized after linking:

* duplicated declarations (``flowchart TD flowchart TD``) collapse into one,
* quote characters and leaked ``[label](http...)`` links are removed,
* the first line is always a declaration (``flowchart TD`` by default),
* body lines are indented with four spaces,
* ``%%`` directives and comments are kept verbatim above the declaration.

``sanitize`` is pure and idempotent.
"""

from __future__ import annotations

import re

DEFAULT_DECLARATION = "flowchart TD"
_BODY_INDENT = "    "

_FENCE_RE = re.compile(r"```[ \t]*([\w-]*)[^\n]*\n(.*?)```", re.DOTALL)
_DIAGRAM_TYPES = r"(?:flowchart|graph|sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram|journey|gitGraph|gantt|pie|mindmap|timeline)"
_DIRECTIONS = r"(?:TD|TB|BT|RL|LR)"
_DECLARATION_RE = re.compile(rf"^{_DIAGRAM_TYPES}(?=\s|$)", re.IGNORECASE)
_STANDALONE_DECLARATION_RE = re.compile(rf"^{_DIAGRAM_TYPES}(?:\s+{_DIRECTIONS})?\s*$", re.IGNORECASE)
_DIRECTIONLESS_RE = re.compile(r"^(flowchart|graph)\s*$", re.IGNORECASE)
_REPEATED_DECLARATION_RE = re.compile(rf"^((?:flowchart|graph)(?:\s+{_DIRECTIONS})?)(?:\s+(?:flowchart|graph)(?:\s+{_DIRECTIONS})?)+(?=\s|$)", re.IGNORECASE)
_REPEATED_DIRECTION_RE = re.compile(rf"^((?:flowchart|graph)\s+({_DIRECTIONS}))(?:\s+\2)+(?=\s|$)", re.IGNORECASE)
_UNTAGGED_DECLARATION_RE = re.compile(rf"^(?:(?:flowchart|graph)\s+{_DIRECTIONS}(?=\W|$)|(?:sequenceDiagram|classDiagram|stateDiagram(?:-v2)?|erDiagram|gitGraph|gantt|mindmap)(?=\s|$))")
_MARKDOWN_LINK_RE = re.compile(r"\[([^\[\]]*)\]\(\s*https?://[^)]*\)")
_DANGLING_LINK_RE = re.compile(r"\]\(https?://[^)\s]*\)?")
_ARROW_RE = re.compile(r"[ \t]*(?<!-)-->(?!>)[ \t]*")
_QUOTES = str.maketrans("", "", "\"'`")


def _collapse_declaration(line: str) -> str:
  previous = None
  while previous != line:
    previous = line
    line = _REPEATED_DECLARATION_RE.sub(r"\1", line)
    line = _REPEATED_DIRECTION_RE.sub(r"\1", line)
  return line


def _strip_links(line: str) -> str:
  previous = None
  while previous != line:
    previous = line
    line = line.replace("**", "")
    line = _MARKDOWN_LINK_RE.sub(r"\1", line)
    line = _DANGLING_LINK_RE.sub("]", line)
  return line


def _clean_line(line: str) -> str:
  line = line.strip()
  if line.startswith("%%"):
    return line
  previous = None
  while previous != line:
    previous = line
    line = _strip_links(line.translate(_QUOTES))
    line = _collapse_declaration(line)
    line = _ARROW_RE.sub(" --> ", line).strip()
  return line


def _first_content_line(body: str) -> str:
  for line in body.splitlines():
    line = line.strip()
    if line and not line.startswith("%%"):
      return line
  return ""


def is_diagram_block(tag: str, body: str) -> bool:
  """Return True for mermaid-tagged fences and untagged fences opening with an unambiguous declaration."""
  if tag.lower() == "mermaid":
    return True
  return not tag and bool(_UNTAGGED_DECLARATION_RE.match(_first_content_line(body)))


def sanitize_diagram(body: str) -> str:
  """Normalize the body of one diagram block."""
  lines = [_clean_line(line) for line in body.splitlines()]
  # Init directives must precede the declaration.
  directives: list[str] = []
  while lines and (not lines[0] or lines[0].startswith("%%")):
    line = lines.pop(0)
    if line:
      directives.append(line)

  if lines and _DECLARATION_RE.match(lines[0]):
    declaration = lines.pop(0)
    if _DIRECTIONLESS_RE.match(declaration):
      declaration = f"{declaration.strip()} TD"
  else:
    declaration = DEFAULT_DECLARATION

  # Keep only the first declaration; later ones break the parser.
  body_lines = [line for line in lines if not _STANDALONE_DECLARATION_RE.match(line)]
  while body_lines and not body_lines[0]:
    body_lines.pop(0)
  while body_lines and not body_lines[-1]:
    body_lines.pop()
  indented = [f"{_BODY_INDENT}{line}" if line else "" for line in body_lines]
  return "\n".join([*directives, declaration, *indented])


def sanitize(text: str) -> str:
  """Sanitize every diagram block in a markdown document."""

  def _replace(match: re.Match[str]) -> str:
    tag, body = match.group(1), match.group(2)
    if not is_diagram_block(tag, body):
      return match.group(0)
    return f"```mermaid\n{sanitize_diagram(body)}\n```"

  return _FENCE_RE.sub(_replace, text)


def diagram_blocks(text: str) -> list[str]:
  """Return the bodies of the diagram blocks in a document."""
  return [match.group(2) for match in _FENCE_RE.finditer(text) if is_diagram_block(match.group(1), match.group(2))]
