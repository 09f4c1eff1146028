"""Prompt builders for the enhancement stages (Hungarian output)."""

from __future__ import annotations

from collections.abc import Sequence

from lms_enhancer.ai.providers.base import SearchSnippet

DEFAULT_SYSTEM_MESSAGE = "Frissítsd a következő tananyag modult."
CONCISE_WORD_CEILING = "250-300"

_DETAILED_TEMPLATE = """Készíts részletes szakmai tananyagot markdown formázásban:

{{TITLE}}
{{CONTEXT}}

Alapanyag:
{{CONTENT}}

Követelmények:
- Semmi bevezetőszöveg, csak szakmai tartalom
- Egyszerű, magyarázó nyelvezet
- Fejlett markdown struktúra (táblázatok, listák)
- **Bold** kiemelés a kulcsfogalmakhoz (1-4 szavas kifejezések)
- 500-800 szó, gyakorlati példákkal
- Magyar nyelv
- KÖTELEZŐ: legalább egy Mermaid diagram (```mermaid blokk, graph TD vagy flowchart TD)
- A diagramban ne használj idézőjelet és linket

Válasz csak a formázott tartalommal:"""

_CONCISE_TEMPLATE = """Készíts tömör, lényegre törő tananyagot maximum {{CEILING}} szóban:

Cím: {{TITLE}}
Eredeti tartalom: {{CONTENT}}

KÖVETELMÉNYEK:
- MAXIMUM {{CEILING}} szó
- Csak a legfontosabb információk
- Egyszerű, érthető nyelvezet
- Markdown formázás, **bold** kiemelés a kulcsfogalmakhoz
- Gyakorlati fókusz
- NE ismételd meg a részletes verziót
- Ha a téma engedi (folyamat, hierarchia), illessz be egy EGYSZERŰ Mermaid diagramot (graph TD)

Válasz:"""

_KEY_CONCEPTS_TEMPLATE = """Gyűjtsd ki a következő tananyag legfontosabb szakmai fogalmait.

Cím: {{TITLE}}
Terület: {{FIELD}}
Tartalom:
{{CONTENT}}

Adj vissza legfeljebb {{LIMIT}} fogalmat JSON tömbként, minden elem formája:
{"concept": "fogalom", "definition": "egy mondatos magyar definíció"}

Válasz csak a JSON tömb:"""


def _replace_placeholders(template: str, values: dict[str, str]) -> str:
  rendered = template
  for key, value in values.items():
    rendered = rendered.replace(f"{{{{{key}}}}}", value)
  return rendered


def build_context_line(profession: str | None, subject: str | None, module_number: int | None) -> str:
  """Return the ``Szakma | Tantárgy | modul`` context line used in system messages."""
  parts: list[str] = []
  if profession:
    parts.append(f"Szakma: {profession}")
  if subject:
    parts.append(f"Tantárgy: {subject}")
  if module_number is not None:
    parts.append(f"{module_number}. modul")
  return " | ".join(parts)


def build_system_instruction(custom_message: str | None, context_line: str) -> str:
  """Combine the admin's custom system message (or the default) with the module context."""
  base = (custom_message or "").strip() or DEFAULT_SYSTEM_MESSAGE
  if not context_line:
    return base
  return f"{base}\n\nKONTEXTUS: {context_line}"


def format_grounding(snippets: Sequence[SearchSnippet], limit: int = 5) -> str:
  """Render search snippets as a prompt appendix."""
  if not snippets:
    return ""
  lines = "\n\n".join(f"**{item.title}**: {item.snippet}" for item in snippets[:limit])
  return f"\n\nAktuális szakmai információk az internetről:\n{lines}\n\nHasználd fel ezeket az információkat a részletes magyarázathoz."


def build_detailed_prompt(title: str, content: str, context_line: str, snippets: Sequence[SearchSnippet] = ()) -> str:
  prompt = _replace_placeholders(
    _DETAILED_TEMPLATE,
    {"TITLE": title, "CONTEXT": f"Kontextus: {context_line}" if context_line else "", "CONTENT": content},
  )
  return prompt + format_grounding(snippets)


def build_concise_prompt(title: str, content: str) -> str:
  return _replace_placeholders(_CONCISE_TEMPLATE, {"TITLE": title, "CONTENT": content, "CEILING": CONCISE_WORD_CEILING})


def build_key_concepts_prompt(title: str, content: str, field_name: str, limit: int) -> str:
  return _replace_placeholders(
    _KEY_CONCEPTS_TEMPLATE,
    {"TITLE": title, "FIELD": field_name, "CONTENT": content[:4000], "LIMIT": str(limit)},
  )


def build_sources_section(snippets: Sequence[SearchSnippet], limit: int = 3) -> str:
  """Render the ``További információk`` section from substantial snippets.

  Titles are italic rather than bold so the keyword linker does not treat page titles
  as concepts.
  """
  relevant = [item for item in snippets if item.title.strip() and item.url and 50 < len(item.snippet.strip()) < 500][:limit]
  if not relevant:
    return ""
  entries = "\n\n".join(f"*{item.title.strip()}*: {item.snippet.strip()}\n*Forrás: {item.url}*" for item in relevant)
  return f"\n\n## További információk\n\n{entries}"
