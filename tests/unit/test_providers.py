"""Unit tests for the HTTP-backed encyclopedia and video providers."""

from __future__ import annotations

import httpx
import pytest

from lms_enhancer.ai.errors import ExternalServiceError, QuotaExceededError, RateLimitedError, TimeoutExternalError
from lms_enhancer.ai.providers.wikipedia import WikipediaProvider
from lms_enhancer.ai.providers.youtube import YouTubeProvider


def _wikipedia(handler) -> WikipediaProvider:
  return WikipediaProvider("https://hu.wikipedia.org", transport=httpx.MockTransport(handler))


def _youtube(handler) -> YouTubeProvider:
  return YouTubeProvider("test-key", transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_wikipedia_resolve_reads_summary() -> None:
  seen: list[str] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request.url.raw_path.decode())
    return httpx.Response(
      200,
      json={
        "type": "standard",
        "title": "Hegesztés",
        "extract": "A hegesztés fémek oldhatatlan kötése. " * 20,
        "content_urls": {"desktop": {"page": "https://hu.wikipedia.org/wiki/Hegeszt%C3%A9s"}},
      },
    )

  provider = _wikipedia(handler)
  article = await provider.resolve("ív hegesztés")
  await provider.aclose()

  assert seen == ["/api/rest_v1/page/summary/%C3%ADv_hegeszt%C3%A9s"]
  assert article is not None
  assert article.title == "Hegesztés"
  assert article.url == "https://hu.wikipedia.org/wiki/Hegeszt%C3%A9s"
  assert len(article.description) == 300


@pytest.mark.anyio
@pytest.mark.parametrize(("status", "payload"), [(404, {}), (200, {"type": "disambiguation", "title": "Ív"})])
async def test_wikipedia_resolve_returns_none_without_a_definition(status: int, payload: dict) -> None:
  provider = _wikipedia(lambda request: httpx.Response(status, json=payload))
  assert await provider.resolve("Ív") is None
  await provider.aclose()


@pytest.mark.anyio
async def test_wikipedia_errors_map_to_the_taxonomy() -> None:
  provider = _wikipedia(lambda request: httpx.Response(429))
  with pytest.raises(RateLimitedError):
    await provider.resolve("varrat")

  def timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("slow", request=request)

  provider = _wikipedia(timeout)
  with pytest.raises(TimeoutExternalError):
    await provider.resolve("varrat")

  provider = _wikipedia(lambda request: httpx.Response(503))
  with pytest.raises(ExternalServiceError):
    await provider.resolve("varrat")


@pytest.mark.anyio
async def test_youtube_search_sends_hungarian_ranking_params() -> None:
  captured: dict[str, str] = {}

  def handler(request: httpx.Request) -> httpx.Response:
    captured.update(request.url.params)
    return httpx.Response(
      200,
      json={
        "items": [
          {"id": {"videoId": "abc"}, "snippet": {"title": "Hegeszt&eacute;s &amp; varrat", "description": "Le&iacute;r&aacute;s", "channelTitle": "Szakma"}},
          {"id": {"kind": "youtube#channel"}, "snippet": {"title": "Csatorna"}},
        ]
      },
    )

  provider = _youtube(handler)
  hits = await provider.search("hegesztés varrat", max_results=3)
  await provider.aclose()

  assert captured["part"] == "snippet"
  assert captured["type"] == "video"
  assert captured["maxResults"] == "3"
  assert captured["order"] == "relevance"
  assert captured["regionCode"] == "HU"
  assert captured["relevanceLanguage"] == "hu"
  assert captured["q"] == "hegesztés varrat"
  assert len(hits) == 1
  assert hits[0].title == "Hegesztés & varrat"
  assert hits[0].description == "Leírás"
  assert hits[0].url == "https://www.youtube.com/watch?v=abc"


@pytest.mark.anyio
async def test_youtube_quota_and_rate_limit_errors() -> None:
  quota = {"error": {"errors": [{"reason": "quotaExceeded"}], "message": "quota"}}
  provider = _youtube(lambda request: httpx.Response(403, json=quota))
  with pytest.raises(QuotaExceededError):
    await provider.search("varrat")

  provider = _youtube(lambda request: httpx.Response(403, json={"error": {"errors": [{"reason": "forbidden"}]}}))
  with pytest.raises(ExternalServiceError):
    await provider.search("varrat")

  provider = _youtube(lambda request: httpx.Response(429))
  with pytest.raises(RateLimitedError):
    await provider.search("varrat")


def test_youtube_requires_an_api_key() -> None:
  with pytest.raises(ValueError):
    YouTubeProvider(None)
