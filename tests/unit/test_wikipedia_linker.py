"""Unit tests for inline encyclopedia linking."""

from __future__ import annotations

import pytest
from conftest import FakeEncyclopedia, no_sleep

from lms_enhancer.ai.enrichment.wikipedia_linker import WikipediaLinker, apply_link, extract_candidates
from lms_enhancer.ai.providers.base import EncyclopediaArticle


@pytest.mark.anyio
async def test_link_keywords_links_bold_term(welding_encyclopedia, no_retry) -> None:
  linker = WikipediaLinker(welding_encyclopedia, policy=no_retry, sleep=no_sleep)
  outcome = await linker.link_keywords("A **hegesztés** fémek kötése.", "welding", 3)

  assert "**[hegesztés](https://hu.wikipedia.org/wiki/Hegesztés)**" in outcome.text
  assert len(outcome.links) == 1
  assert outcome.links[0].text == "hegesztés"
  assert outcome.links[0].url == "https://hu.wikipedia.org/wiki/Hegesztés"
  assert outcome.links[0].description == "Fémek oldhatatlan kötése."


@pytest.mark.anyio
async def test_link_keywords_uses_title_when_article_has_no_description(welding_encyclopedia, no_retry) -> None:
  linker = WikipediaLinker(welding_encyclopedia, policy=no_retry, sleep=no_sleep)
  outcome = await linker.link_keywords("Az **elektróda** vezeti az áramot.", "welding", 3)
  assert outcome.links[0].description == "Wikipedia: Elektróda"


@pytest.mark.anyio
async def test_link_keywords_skips_failed_and_missing_lookups(no_retry) -> None:
  encyclopedia = FakeEncyclopedia(
    {"varrat": EncyclopediaArticle(title="Varrat", url="https://hu.wikipedia.org/wiki/Varrat", description="")},
    failing={"elektróda"},
  )
  linker = WikipediaLinker(encyclopedia, policy=no_retry, sleep=no_sleep)
  text = "**Elektróda**, **ismeretlen fogalom** és **varrat**."
  outcome = await linker.link_keywords(text, "welding", 5)

  # Terms sharing the field vocabulary are looked up first.
  assert encyclopedia.lookups == ["varrat", "Elektróda", "ismeretlen fogalom"]
  assert [link.text for link in outcome.links] == ["varrat"]
  assert "**Elektróda**" in outcome.text
  assert "**ismeretlen fogalom**" in outcome.text


@pytest.mark.anyio
async def test_link_keywords_respects_the_keyword_cap(welding_encyclopedia, no_retry) -> None:
  sleeps: list[float] = []

  async def record_sleep(seconds: float) -> None:
    sleeps.append(seconds)

  linker = WikipediaLinker(welding_encyclopedia, policy=no_retry, delay_seconds=0.5, sleep=record_sleep)
  outcome = await linker.link_keywords("**hegesztés**, **elektróda**, **varrat**", "general", 2)

  assert welding_encyclopedia.lookups == ["hegesztés", "elektróda"]
  assert len(outcome.links) == 2
  assert sleeps == [0.5]


def test_extract_candidates_ignores_fences_links_and_stop_words() -> None:
  text = "**Fontos**: a **hegesztés** és **[ív](https://x)** mellett\n```mermaid\nA[**elektróda**]\n```\n**egy nagyon hosszú kiemelt mondat részlet**"
  assert extract_candidates(text) == ["hegesztés"]


def test_apply_link_leaves_code_fences_untouched() -> None:
  text = "**hegesztés**\n```\n**hegesztés**\n```"
  linked = apply_link(text, "hegesztés", "https://hu.wikipedia.org/wiki/Hegesztés_(technológia)")
  assert linked.startswith("**[hegesztés](https://hu.wikipedia.org/wiki/Hegesztés_%28technológia%29)**")
  assert linked.endswith("```\n**hegesztés**\n```")
