"""
Repository reference resolution.

Turns a user-supplied GitHub URL into a ``RepositoryReference``. Pure: no
network access, same input always yields the same result or the same error.
"""
import logging
import re

from .errors import InvalidReferenceError
from .models import RepositoryReference

logger = logging.getLogger(__name__)

GITHUB_REPO_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([A-Za-z0-9\-._]+)/([A-Za-z0-9\-._]+)(?:\.git)?/?$"
)
GIT_SUFFIX = ".git"


def resolve(locator: str) -> RepositoryReference:
    """
    Parse a repository URL into an (owner, name) reference.

    Accepts an optional scheme, optional ``www.``, host ``github.com``, then
    ``/owner/name`` with an optional ``.git`` suffix and trailing slash.

    Args:
        locator: Repository URL as typed by the user

    Returns:
        RepositoryReference with any trailing ``.git`` removed from the name

    Raises:
        InvalidReferenceError: if the locator does not match the grammar
    """
    match = GITHUB_REPO_URL_PATTERN.match((locator or "").strip())
    if not match:
        logger.debug("Rejected repository locator %r", locator)
        raise InvalidReferenceError(locator)

    owner, name = match.groups()
    # The name class includes '.', so the optional group never consumes the suffix
    if name.endswith(GIT_SUFFIX):
        name = name[: -len(GIT_SUFFIX)]
    if not name:
        raise InvalidReferenceError(locator)

    return RepositoryReference(owner=owner, name=name)
