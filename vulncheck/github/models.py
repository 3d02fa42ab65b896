"""
Data models for GitHub API responses.
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import FileEntry

logger = logging.getLogger(__name__)


@dataclass
class RepositoryMetadata:
    """Repository information from GitHub API."""
    full_name: str
    default_branch: str = "main"
    html_url: Optional[str] = None
    description: Optional[str] = None
    language: Optional[str] = None
    size: int = 0
    is_private: bool = False


@dataclass
class FileTree:
    """Recursive tree listing of a branch."""
    entries: List[FileEntry] = field(default_factory=list)
    truncated: bool = False

    @property
    def blob_count(self) -> int:
        return sum(1 for entry in self.entries if entry.is_blob)


@dataclass
class FileContent:
    """A file fetched through the contents API.

    ``content_base64`` is ``None`` for empty files and for files GitHub does
    not inline (binary or too large for the contents endpoint).
    """
    path: str
    content_base64: Optional[str]
    size_bytes: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.content_base64

    def decode(self) -> Optional[str]:
        """Return the file text, or ``None`` when there is nothing to scan."""
        if self.is_empty:
            return None
        try:
            raw = base64.b64decode(self.content_base64)
        except (binascii.Error, ValueError) as e:
            logger.warning("Could not decode base64 content of %s: %s", self.path, e)
            return None
        return raw.decode("utf-8", errors="replace")
