"""Base interfaces for text generation providers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ImagePayload:
  """Inline image sent alongside a prompt."""

  data: bytes
  media_type: str


class TextGenerator(Protocol):
  """Produce text for a prompt, optionally grounded on an image."""

  async def generate(self, prompt: str, *, max_output_tokens: int, image: ImagePayload | None = None, model: str | None = None) -> str:
    """Return the generated text or raise ProviderError."""
