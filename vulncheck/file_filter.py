"""
File eligibility filtering for repository trees.

The allow/deny lists below are the single source of truth for which files
get analyzed. The deny-list always wins over the allow-list.
"""
import logging
import posixpath
from typing import Iterable, List

from .github.models import FileTree
from .models import EligibleFile

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (
    ".js", ".jsx", ".ts", ".tsx", ".py", ".go", ".java", ".rb", ".hcl", ".yml", ".yaml",
)

ALLOWED_FILENAMES = frozenset({
    "package.json", "Dockerfile", "requirements.txt", "pom.xml", "build.gradle",
})

IGNORED_PATH_PREFIXES = (
    "node_modules/", "dist/", "build/", ".git/", "vendor/", ".cache/", "tmp/", "temp/",
    "__pycache__/", ".pytest_cache/", ".vscode/", ".idea/", "coverage/", "test-results/",
    ".next/", ".nuxt/", ".expo/", ".history/", ".venv/", ".env/", ".mypy_cache/",
    ".terraform/",
)

IGNORED_EXTENSIONS = (
    ".zip", ".tar.gz", ".rar", ".7z", ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico",
    ".pdf", ".mp4",
)

SIZE_UNITS = ["B", "KB", "MB", "GB"]


def format_file_size(size_bytes: int) -> str:
    """Format a byte count for display, e.g. ``1.5 KB``."""
    if size_bytes <= 0:
        return "0 B"
    value = float(size_bytes)
    i = 0
    while value >= 1024 and i < len(SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    value = round(value, 1)
    if value == int(value):
        value = int(value)
    return f"{value} {SIZE_UNITS[i]}"


def is_ignored(path: str) -> bool:
    """True if the path sits under a denied directory or is a binary/archive."""
    return path.startswith(IGNORED_PATH_PREFIXES) or path.endswith(IGNORED_EXTENSIONS)


def is_allowed(path: str) -> bool:
    """True if the extension or the exact basename is allow-listed."""
    return path.endswith(ALLOWED_EXTENSIONS) or posixpath.basename(path) in ALLOWED_FILENAMES


def filter_files(tree: FileTree) -> List[EligibleFile]:
    """
    Select the files of a tree that should be analyzed.

    Tree order is preserved. Sizes are carried for display only and play no
    part in eligibility.

    Args:
        tree: Tree listing from ``GitHubAPI.get_file_tree``

    Returns:
        Eligible files in tree order
    """
    eligible = [
        EligibleFile(
            path=entry.path,
            size_bytes=entry.size_bytes,
            formatted_size=format_file_size(entry.size_bytes)
        )
        for entry in tree.entries
        if entry.is_blob and not is_ignored(entry.path) and is_allowed(entry.path)
    ]
    logger.debug("%d of %d tree entries are eligible", len(eligible), len(tree.entries))
    return eligible


def total_size(files: Iterable[EligibleFile]) -> int:
    """Sum of the listed sizes of the given files."""
    return sum(f.size_bytes for f in files)
