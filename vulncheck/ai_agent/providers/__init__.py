"""Analysis provider module initialization."""

from .base import AnalysisProvider
from .openai import OpenAIProvider
from .claude import ClaudeProvider
from .http import HttpAnalysisProvider


def get_provider(settings) -> AnalysisProvider:
    """Build the analysis provider selected by ``settings.AI_PROVIDER``."""
    provider = (settings.AI_PROVIDER or "").lower()

    if provider == "openai":
        return OpenAIProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            max_tokens=settings.AI_MAX_TOKENS
        )
    if provider in ("claude", "anthropic"):
        return ClaudeProvider(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            max_tokens=settings.AI_MAX_TOKENS
        )
    if provider == "http":
        return HttpAnalysisProvider(
            url=settings.ANALYSIS_FUNCTION_URL,
            api_key=settings.ANALYSIS_FUNCTION_KEY,
            timeout=settings.ANALYSIS_FUNCTION_TIMEOUT
        )
    raise ValueError(f"Unknown AI provider: {settings.AI_PROVIDER}")


__all__ = [
    "AnalysisProvider",
    "OpenAIProvider",
    "ClaudeProvider",
    "HttpAnalysisProvider",
    "get_provider"
]
