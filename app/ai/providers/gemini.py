"""Gemini provider implementation using the google-genai SDK."""

from __future__ import annotations

import logging
import warnings
from typing import Any, Final

from pydantic.warnings import ArbitraryTypeWarning

with warnings.catch_warnings():
  warnings.filterwarnings("ignore", message=r"<built-in function any> is not a Python type.*", category=ArbitraryTypeWarning)
  from google import genai
  from google.genai import types

from app.ai.errors import ProviderError
from app.ai.providers.base import ImagePayload

logger = logging.getLogger(__name__)


class GeminiGenerator:
  """Text generator backed by the Gemini async client."""

  _DEFAULT_MODEL: Final[str] = "gemini-2.5-flash"

  def __init__(self, api_key: str, *, default_model: str | None = None, client: Any | None = None) -> None:
    if not api_key and client is None:
      raise ValueError("GEMINI_API_KEY environment variable is required")
    self._default_model = default_model or self._DEFAULT_MODEL
    self._client = client or genai.Client(api_key=api_key)

  def _build_contents(self, prompt: str, image: ImagePayload | None) -> Any:
    if image is None:
      return prompt
    # Image first, then the instruction text.
    return [types.Part.from_bytes(data=image.data, mime_type=image.media_type), prompt]

  async def generate(self, prompt: str, *, max_output_tokens: int, image: ImagePayload | None = None, model: str | None = None) -> str:
    """Generate text from Gemini without retrying."""
    model_name = model or self._default_model
    contents = self._build_contents(prompt, image)
    config = types.GenerateContentConfig(max_output_tokens=max_output_tokens)

    try:
      # Use the async client to avoid blocking the asyncio event loop.
      response = await self._client.aio.models.generate_content(model=model_name, contents=contents, config=config)
      # Reading text walks the candidates and can raise on blocked or malformed responses.
      text = response.text
      usage = response.usage_metadata
    except Exception as exc:
      raise ProviderError(f"Gemini generation failed: {exc}") from exc

    if not text or not text.strip():
      raise ProviderError(f"Gemini returned an empty response for model {model_name}.")

    if usage:
      logger.debug("Gemini usage model=%s prompt_tokens=%s completion_tokens=%s", model_name, usage.prompt_token_count, usage.candidates_token_count)
    return text
