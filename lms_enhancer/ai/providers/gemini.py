"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
from typing import Final

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from lms_enhancer.ai.errors import InvalidResponseError, RateLimitedError, classify_external_error
from lms_enhancer.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse

logger = logging.getLogger(__name__)


class GeminiModel(AIModel):
  """Gemini text model client."""

  def __init__(self, name: str, api_key: str) -> None:
    self.name: str = name
    if not api_key:
      raise ValueError("A Gemini API key is required (LMS_GEMINI_API_KEY).")

    self._client = genai.Client(api_key=api_key)

  async def generate(self, prompt: str, system_instruction: str | None = None) -> ModelResponse:
    """Generate text response from Gemini."""
    config = types.GenerateContentConfig(system_instruction=system_instruction) if system_instruction else None

    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await self._client.aio.models.generate_content(model=self.name, contents=prompt, config=config)
    except genai_errors.APIError as exc:
      if exc.code == 429:
        raise RateLimitedError(f"gemini: {exc}") from exc
      raise classify_external_error(exc, service="gemini") from exc

    text = response.text
    if not text or not text.strip():
      raise InvalidResponseError("gemini: empty response")

    logger.debug("Gemini response (%d chars)", len(text))
    usage = None
    if response.usage_metadata:
      usage = {"prompt_tokens": response.usage_metadata.prompt_token_count or 0, "completion_tokens": response.usage_metadata.candidates_token_count or 0, "total_tokens": response.usage_metadata.total_token_count or 0}
    return SimpleModelResponse(content=text, usage=usage)


class GeminiProvider(Provider):
  """Gemini provider."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"
  _AVAILABLE_MODELS: Final[set[str]] = {"gemini-2.5-pro", "gemini-2.5-flash", "gemini-2.0-flash", "gemini-2.0-flash-lite"}

  def __init__(self, api_key: str | None = None) -> None:
    self.name: str = "gemini"
    self._api_key = api_key

  def get_model(self, model: str | None = None) -> AIModel:
    """Return a Gemini model client."""
    model_name = model or self._DEFAULT_MODEL
    if model_name not in self._AVAILABLE_MODELS:
      raise ValueError(f"Unsupported Gemini model '{model_name}'.")
    if not self._api_key:
      raise ValueError("A Gemini API key is required (LMS_GEMINI_API_KEY).")

    return GeminiModel(model_name, api_key=self._api_key)
