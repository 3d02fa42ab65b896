"""
Base abstract class for analysis providers.

Defines the single capability every backend (OpenAI, Claude, the hosted
analysis function) must implement: analyze one file, return raw findings.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ...errors import AnalysisError

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an expert application security engineer performing a code review. "
    "Report only concrete, exploitable security issues. Respond with JSON only."
)


class AnalysisProvider(ABC):
    """Abstract base class for analysis providers."""

    name = "base"

    def __init__(self, api_key: str, model: str, max_tokens: int = 4000):
        """
        Initialize the provider.

        Args:
            api_key: API key for the provider
            model: Model name to use
            max_tokens: Maximum tokens for responses
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self._total_tokens = 0

    @abstractmethod
    async def analyze_file(self, file_content: str, file_path: str) -> List[Dict[str, Any]]:
        """
        Analyze one source file for security issues.

        Args:
            file_content: Decoded text of the file
            file_path: Repository-relative path, used as context for the model

        Returns:
            Raw vulnerability dicts with ``line``, ``severity``, ``description``
            and optionally ``remediation``

        Raises:
            AnalysisError: if the backend fails or returns unparseable output
        """
        pass

    async def __call__(self, file_content: str, file_path: str) -> List[Dict[str, Any]]:
        return await self.analyze_file(file_content, file_path)

    def get_total_tokens(self) -> int:
        """Get total tokens used by this provider."""
        return self._total_tokens

    def _build_scan_prompt(self, file_content: str, file_path: str) -> str:
        """Build the review prompt for a single file."""
        numbered = "\n".join(
            f"{i}: {line}" for i, line in enumerate(file_content.splitlines(), start=1)
        )
        return f"""Review the following file for security vulnerabilities.

File: {file_path}

```
{numbered}
```

Return a JSON object of the form:
{{
  "vulnerabilities": [
    {{
      "line": <1-based line number>,
      "severity": "Critical" | "High" | "Medium" | "Low",
      "description": "<what is wrong and why it is exploitable>",
      "remediation": "<how to fix it>"
    }}
  ]
}}

Return {{"vulnerabilities": []}} when the file has no security issues.
"""

    def _clean_json_response(self, content: str) -> str:
        """Clean JSON response from Markdown formatting."""
        content = content.strip()
        if content.startswith("```"):
            # Remove opening ```json or ```
            content = content.split("\n", 1)[1] if "\n" in content else ""
            # Remove closing ```
            if content.rstrip().endswith("```"):
                content = content.rstrip().rsplit("```", 1)[0]
        return content.strip()

    def parse_vulnerabilities(self, content: Any, file_path: str) -> List[Dict[str, Any]]:
        """
        Extract the ``vulnerabilities`` list from a backend response.

        Args:
            content: Response text (possibly fenced JSON) or an already-decoded dict
            file_path: File being analyzed, for error messages

        Returns:
            List of raw vulnerability dicts

        Raises:
            AnalysisError: if the payload is not JSON or has no vulnerability list
        """
        if isinstance(content, str):
            if not content.strip():
                raise AnalysisError(file_path, f"{self.name} returned empty content")
            try:
                data = json.loads(self._clean_json_response(content))
            except json.JSONDecodeError as e:
                logger.debug(f"Raw content: {content}")
                raise AnalysisError(file_path, f"{self.name} response was not valid JSON: {e}") from e
        else:
            data = content

        if not isinstance(data, dict):
            raise AnalysisError(file_path, f"{self.name} response was not a JSON object")

        vulnerabilities = data.get("vulnerabilities", [])
        if vulnerabilities is None:
            vulnerabilities = []
        if not isinstance(vulnerabilities, list):
            raise AnalysisError(file_path, f"{self.name} response has no vulnerability list")

        return [v for v in vulnerabilities if isinstance(v, dict)]
