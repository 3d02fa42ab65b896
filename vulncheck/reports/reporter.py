"""
Finding presentation and lazy source loading.
"""
import asyncio
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

from ..models import Finding, RepositoryReference, Severity

logger = logging.getLogger(__name__)

EMPTY_FILE_PLACEHOLDER = "// File content is not available or file is empty."


class FindingReporter:
    """Read-only view over a scan's findings with per-file source caching.

    Source text is fetched on demand and cached by file path, so every
    finding in the same file shares one request. Concurrent requests for a
    path that is already being fetched await the same task instead of
    issuing another call.

    Args:
        client: Content source with ``get_file_content(ref, path)``
        repo_ref: Repository the findings belong to
        findings: Findings in scan order
    """

    def __init__(self, client, repo_ref: RepositoryReference, findings: List[Finding]):
        self.client = client
        self.repo_ref = repo_ref
        self._findings: Tuple[Finding, ...] = tuple(findings)
        self._by_id: Dict[int, Finding] = {f.id: f for f in self._findings}
        self._sources: Dict[str, str] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self.fetch_count = 0

    @property
    def findings(self) -> Tuple[Finding, ...]:
        return self._findings

    def get_finding(self, finding_id: int) -> Finding:
        """Raises ``KeyError`` for an unknown id."""
        return self._by_id[finding_id]

    def group_by_file(self) -> "OrderedDict[str, List[Finding]]":
        """Findings grouped by file, in first-seen order."""
        groups: "OrderedDict[str, List[Finding]]" = OrderedDict()
        for finding in self._findings:
            groups.setdefault(finding.file, []).append(finding)
        return groups

    def group_by_severity(self) -> "OrderedDict[Severity, List[Finding]]":
        """Findings grouped by severity, most severe first. Empty levels are kept."""
        groups: "OrderedDict[Severity, List[Finding]]" = OrderedDict((s, []) for s in Severity)
        for finding in self._findings:
            groups[finding.severity].append(finding)
        return groups

    def severity_counts(self) -> Dict[str, int]:
        return {severity.value: len(items) for severity, items in self.group_by_severity().items()}

    def cached_source(self, path: str) -> Optional[str]:
        return self._sources.get(path)

    async def load_source(self, finding: Finding) -> str:
        """
        Return the full text of the finding's file, fetching it at most once.

        Errors are not cached: every waiter gets the error and the next call
        tries again.
        """
        path = finding.file
        if path in self._sources:
            return self._sources[path]

        task = self._in_flight.get(path)
        if task is None:
            task = asyncio.ensure_future(self._fetch(path))
            self._in_flight[path] = task
            task.add_done_callback(lambda _t, p=path: self._in_flight.pop(p, None))

        # Shield so one cancelled waiter does not cancel the fetch for the others
        return await asyncio.shield(task)

    async def _fetch(self, path: str) -> str:
        self.fetch_count += 1
        logger.debug("Loading source of %s from %s", path, self.repo_ref)
        content = await asyncio.to_thread(self.client.get_file_content, self.repo_ref, path)
        text = content.decode()
        if not text:
            text = EMPTY_FILE_PLACEHOLDER
        self._sources[path] = text
        return text

    def get_line(self, finding: Finding) -> Optional[str]:
        """The referenced source line, once the file has been loaded."""
        source = self._sources.get(finding.file)
        if source is None:
            return None
        lines = source.splitlines()
        if 1 <= finding.line <= len(lines):
            return lines[finding.line - 1]
        return None
