"""
GitHub API client for VulnCheck.
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import AuthError, ForbiddenError, NotFoundError, TransportError
from ..models import FileEntry, RepositoryReference
from .models import FileContent, FileTree, RepositoryMetadata


class GitHubAPI:
    """GitHub contents client with retry logic and error classification."""

    BASE_URL = "https://api.github.com"

    ERRORS_BY_STATUS = {
        401: AuthError,
        403: ForbiddenError,
        404: NotFoundError,
    }

    def __init__(self, token: str, base_url: Optional[str] = None,
                 max_retries: int = 3, timeout: Optional[float] = None):
        """Initialize the GitHub API client.

        Args:
            token: GitHub personal access token (bearer credential)
            base_url: API root, defaults to the public GitHub API
            max_retries: Maximum number of retries for 5xx/429 responses
            timeout: Per-request timeout in seconds, ``None`` for the transport default
        """
        self.token = token
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.session = self._create_session()
        self.logger = logging.getLogger(__name__)

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic and authentication."""
        session = requests.Session()
        retries = Retry(
            total=self.max_retries,
            backoff_factor=1,
            status_forcelist=[500, 502, 503, 504, 429],
            allowed_methods=["GET"],
            raise_on_status=False
        )
        session.mount("https://", HTTPAdapter(max_retries=retries))
        session.headers.update({
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "VulnCheck/1.0.0"
        })
        return session

    def _raise_for_status(self, response: requests.Response, operation: str, target: str) -> None:
        """Translate a non-2xx response into the pipeline's error taxonomy."""
        if response.ok:
            return

        provider_message = None
        try:
            body = response.json()
            if isinstance(body, dict):
                provider_message = body.get("message")
        except ValueError:
            pass

        error_cls = self.ERRORS_BY_STATUS.get(response.status_code, TransportError)
        if error_cls is TransportError and not provider_message:
            provider_message = response.reason

        self.logger.error(
            "GitHub API error on %s %s: HTTP %s %s",
            operation, target, response.status_code, provider_message or ""
        )
        raise error_cls(
            operation=operation,
            target=target,
            status_code=response.status_code,
            provider_message=provider_message
        )

    def _get_json(self, endpoint: str, operation: str, target: str,
                  params: Optional[Dict[str, Any]] = None) -> Any:
        """Make an authenticated GET request and return the decoded JSON body."""
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        self.logger.debug("GET %s", url)

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error("GitHub request for %s failed: %s", target, e)
            raise TransportError(
                operation=operation,
                target=target,
                provider_message=e.__class__.__name__
            ) from e

        self._raise_for_status(response, operation, target)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                operation=operation,
                target=target,
                status_code=response.status_code,
                provider_message="Response was not valid JSON"
            ) from e

    def get_repository_metadata(self, ref: RepositoryReference) -> RepositoryMetadata:
        """Get repository information, most importantly the default branch."""
        data = self._get_json(
            f"repos/{ref.owner}/{ref.name}",
            operation="metadata",
            target=ref.full_name
        )
        return RepositoryMetadata(
            full_name=data.get("full_name", ref.full_name),
            default_branch=data.get("default_branch") or "main",
            html_url=data.get("html_url"),
            description=data.get("description"),
            language=data.get("language"),
            size=data.get("size") or 0,
            is_private=bool(data.get("private", False))
        )

    def get_file_tree(self, ref: RepositoryReference, branch: str) -> FileTree:
        """Get the recursive file tree of a branch.

        A ``truncated`` listing is returned as-is; the caller decides how to
        surface it.
        """
        data = self._get_json(
            f"repos/{ref.owner}/{ref.name}/git/trees/{quote(branch, safe='')}",
            operation="tree",
            target=ref.full_name,
            params={"recursive": 1}
        )

        entries = [
            FileEntry(
                path=item["path"],
                size_bytes=item.get("size") or 0,
                kind=item.get("type", "blob")
            )
            for item in data.get("tree", [])
            if item.get("path")
        ]
        truncated = bool(data.get("truncated", False))
        if truncated:
            self.logger.warning("Tree listing for %s@%s was truncated by GitHub", ref, branch)

        return FileTree(entries=entries, truncated=truncated)

    def get_file_content(self, ref: RepositoryReference, path: str) -> FileContent:
        """Get a single file's base64 content.

        ``content_base64`` is ``None`` for empty files and for files the
        contents API does not inline.
        """
        data = self._get_json(
            f"repos/{ref.owner}/{ref.name}/contents/{quote(path)}",
            operation="content",
            target=f"{ref.full_name}:{path}"
        )
        if isinstance(data, list):
            # A directory listing came back; there is no file body to scan
            return FileContent(path=path, content_base64=None, size_bytes=0)

        return FileContent(
            path=path,
            content_base64=data.get("content") or None,
            size_bytes=data.get("size") or 0
        )

    def close(self) -> None:
        self.session.close()
