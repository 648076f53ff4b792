"""Generative AI providers returning JSON objects."""

from app.domain.ai.providers.base import StructuredAIProvider
from app.domain.ai.providers.gemini import GeminiProvider
from app.domain.ai.providers.openai import OpenAIProvider

__all__ = ["GeminiProvider", "OpenAIProvider", "StructuredAIProvider"]
