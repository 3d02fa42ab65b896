"""
OpenAI provider implementation for file analysis.

Uses OpenAI chat completions in JSON mode to review one file at a time.
"""

import logging
from typing import Any, Dict, List

from openai import AsyncOpenAI, OpenAIError

from ...errors import AnalysisError
from .base import AnalysisProvider, SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class OpenAIProvider(AnalysisProvider):
    """OpenAI GPT provider for file analysis."""

    name = "openai"

    def __init__(self, api_key: str, model: str = "gpt-4o", max_tokens: int = 4000):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            model: Model name (default: gpt-4o)
            max_tokens: Maximum tokens for responses
        """
        super().__init__(api_key, model, max_tokens)
        self.client = AsyncOpenAI(api_key=api_key)
        logger.info(f"Initialized OpenAI provider with model: {model}")

    def _build_params(self, prompt: str) -> Dict[str, Any]:
        api_params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt}
            ],
            "response_format": {"type": "json_object"}
        }

        # GPT-5 and reasoning models use max_completion_tokens and don't support temperature
        model = self.model.lower()
        if "gpt-5" in model or model.startswith(("o1", "o3", "o4")):
            api_params["max_completion_tokens"] = self.max_tokens
        else:
            api_params["max_tokens"] = self.max_tokens
            api_params["temperature"] = 0.2
        return api_params

    async def analyze_file(self, file_content: str, file_path: str) -> List[Dict[str, Any]]:
        prompt = self._build_scan_prompt(file_content, file_path)

        try:
            response = await self.client.chat.completions.create(**self._build_params(prompt))
        except OpenAIError as e:
            logger.error(f"OpenAI analysis of {file_path} failed: {e}")
            raise AnalysisError(file_path, f"OpenAI request failed: {e}") from e

        if response.usage is not None:
            self._total_tokens += response.usage.total_tokens

        if not response.choices:
            raise AnalysisError(file_path, "OpenAI returned no choices")

        vulnerabilities = self.parse_vulnerabilities(response.choices[0].message.content or "", file_path)
        logger.info(f"OpenAI analysis of {file_path} complete: {len(vulnerabilities)} findings")
        return vulnerabilities
