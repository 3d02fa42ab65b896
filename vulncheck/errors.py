"""
Error taxonomy for the scan pipeline.

Every error carries a ``user_message`` that can be shown as-is. Stage-level
errors (resolving, metadata, tree) abort the whole fetch; file-level errors
during a scan are skipped by the runner, except ``AuthError``.
"""
from typing import Optional


class VulnCheckError(Exception):
    """Base class for all pipeline errors."""

    @property
    def user_message(self) -> str:
        return str(self)


class InvalidReferenceError(VulnCheckError):
    """The repository locator does not match the accepted URL grammar."""

    def __init__(self, locator: str):
        self.locator = locator
        super().__init__(
            "Invalid GitHub repository URL format. "
            "Please use 'https://github.com/owner/repo'."
        )


class ContentSourceError(VulnCheckError):
    """A GitHub API call failed.

    Args:
        operation: Which call failed (``metadata``, ``tree`` or ``content``)
        target: Repository full name, or ``owner/name:path`` for file content
        status_code: HTTP status, ``None`` for connection-level failures
        provider_message: ``message`` field from the GitHub error body
    """

    def __init__(
        self,
        operation: str,
        target: str,
        status_code: Optional[int] = None,
        provider_message: Optional[str] = None,
    ):
        self.operation = operation
        self.target = target
        self.status_code = status_code
        self.provider_message = provider_message
        super().__init__(self._describe())

    def _describe(self) -> str:
        detail = f"GitHub request failed for {self.target} ({self.operation})"
        if self.status_code is not None:
            detail += f" [HTTP {self.status_code}]"
        if self.provider_message:
            detail += f": {self.provider_message}"
        return detail


class AuthError(ContentSourceError):
    """401 - the token is missing, wrong or expired."""

    @property
    def user_message(self) -> str:
        if self.operation == "content":
            return (
                "Authentication failed while fetching a file. Make sure your GitHub "
                "token is correct and has 'repo' scope. Scan aborted."
            )
        return (
            "Authentication failed. Make sure your GitHub Personal Access Token "
            "is correct and has 'repo' scope."
        )


class ForbiddenError(ContentSourceError):
    """403 - rate limited or the token lacks permission."""

    DEFAULT_MESSAGE = "Rate limit likely exceeded or insufficient permissions."

    @property
    def user_message(self) -> str:
        message = self.provider_message or self.DEFAULT_MESSAGE
        if self.operation == "tree":
            return f"GitHub API access forbidden while fetching file tree. {message}"
        if self.operation == "content":
            return f"GitHub API access forbidden while fetching {self.target}. {message}"
        return f"GitHub API access forbidden. {message}"


class NotFoundError(ContentSourceError):
    """404 - repository, branch or file does not exist (or is invisible to the token)."""

    @property
    def user_message(self) -> str:
        if self.operation == "tree":
            return (
                "Could not find the repository's file tree. "
                "The default branch may not exist or is empty."
            )
        if self.operation == "content":
            return f"File not found: {self.target}."
        return (
            "Repository not found. Check the URL and ensure your token "
            "has access to this repository."
        )


class TransportError(ContentSourceError):
    """Any other non-2xx status, or a connection failure."""

    @property
    def user_message(self) -> str:
        if self.status_code is None:
            reason = self.provider_message or "connection failed"
            return f"Could not reach GitHub ({reason}). Please try again."
        what = {
            "metadata": "repository info",
            "tree": "repository file tree",
            "content": f"file content for {self.target}",
        }.get(self.operation, self.target)
        return f"Failed to fetch {what} (Status: {self.status_code}). Please try again."


class AnalysisError(VulnCheckError):
    """The analysis backend failed or returned output that could not be parsed."""

    def __init__(self, file_path: str, reason: str):
        self.file_path = file_path
        self.reason = reason
        super().__init__(f"Could not scan {file_path}: {reason}")


class InsufficientCreditsError(VulnCheckError):
    """The account cannot pay for a scan."""

    def __init__(self, user_id: str, required: int, available: int):
        self.user_id = user_id
        self.required = required
        self.available = available
        super().__init__(
            f"You need {required} credit{'s' if required != 1 else ''} to perform this "
            f"action. You have {available} credit{'s' if available != 1 else ''}."
        )


class ScanStateError(VulnCheckError):
    """The session is not in a state that allows the requested step."""


def describe_error(exc: BaseException) -> str:
    """Return a human-readable message for any exception."""
    if isinstance(exc, VulnCheckError):
        return exc.user_message
    return str(exc) or "An unexpected error occurred."
