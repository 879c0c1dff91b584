"""Provider implementations."""

from app.ai.providers.base import ImagePayload, TextGenerator
from app.ai.providers.gemini import GeminiGenerator

__all__ = ["ImagePayload", "TextGenerator", "GeminiGenerator"]
