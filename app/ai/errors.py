"""Error types raised by the content generation layer."""

from __future__ import annotations


class ProviderError(RuntimeError):
  """Raised when the generation provider fails or returns nothing usable."""


class MalformedOutputError(ProviderError):
  """Raised when generated text does not match the expected JSON contract."""

  def __init__(self, message: str, *, raw: str | None = None) -> None:
    super().__init__(message)
    self.raw = raw
