"""
Hosted analysis function provider.

Calls a remote function that takes ``{fileContent, filePath}`` and answers
``{vulnerabilities: [...]}``. The prompt lives on the remote side.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import requests

from ...errors import AnalysisError
from .base import AnalysisProvider

logger = logging.getLogger(__name__)


class HttpAnalysisProvider(AnalysisProvider):
    """Provider backed by a hosted analysis function."""

    name = "http"

    def __init__(self, url: str, api_key: str = "", timeout: Optional[float] = 120.0,
                 session: Optional[requests.Session] = None):
        """
        Args:
            url: Function endpoint
            api_key: Sent as a bearer token when set
            timeout: Request timeout in seconds
            session: Optional pre-configured session
        """
        super().__init__(api_key, model="remote")
        if not url:
            raise ValueError("ANALYSIS_FUNCTION_URL must be set for the http provider")
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def _post(self, file_content: str, file_path: str) -> requests.Response:
        return self.session.post(
            self.url,
            json={"fileContent": file_content, "filePath": file_path},
            timeout=self.timeout
        )

    async def analyze_file(self, file_content: str, file_path: str) -> List[Dict[str, Any]]:
        try:
            response = await asyncio.to_thread(self._post, file_content, file_path)
        except requests.RequestException as e:
            logger.error(f"Analysis function call for {file_path} failed: {e}")
            raise AnalysisError(file_path, f"analysis request failed: {e}") from e

        if not response.ok:
            raise AnalysisError(file_path, f"analysis function returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise AnalysisError(file_path, "analysis function response was not valid JSON") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise AnalysisError(file_path, str(payload["error"]))

        return self.parse_vulnerabilities(payload, file_path)
