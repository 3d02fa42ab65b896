"""
Claude (Anthropic) provider implementation for file analysis.
"""

import logging
from typing import Any, Dict, List

from anthropic import AsyncAnthropic, AnthropicError

from ...errors import AnalysisError
from .base import AnalysisProvider, SYSTEM_PROMPT

logger = logging.getLogger(__name__)


class ClaudeProvider(AnalysisProvider):
    """Anthropic Claude provider for file analysis."""

    name = "claude"

    def __init__(self, api_key: str, model: str = "claude-3-5-sonnet-20241022", max_tokens: int = 4000):
        """
        Initialize Claude provider.

        Args:
            api_key: Anthropic API key
            model: Model name
            max_tokens: Maximum tokens for responses
        """
        super().__init__(api_key, model, max_tokens)
        self.client = AsyncAnthropic(api_key=api_key)
        logger.info(f"Initialized Claude provider with model: {model}")

    async def analyze_file(self, file_content: str, file_path: str) -> List[Dict[str, Any]]:
        prompt = self._build_scan_prompt(file_content, file_path)

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0.2,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": prompt
                    }
                ]
            )
        except AnthropicError as e:
            logger.error(f"Claude analysis of {file_path} failed: {e}")
            raise AnalysisError(file_path, f"Claude request failed: {e}") from e

        usage = response.usage
        self._total_tokens += usage.input_tokens + usage.output_tokens

        # Only text blocks carry the JSON answer
        content = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        vulnerabilities = self.parse_vulnerabilities(content, file_path)
        logger.info(f"Claude analysis of {file_path} complete: {len(vulnerabilities)} findings")
        return vulnerabilities
