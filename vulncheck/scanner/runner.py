"""
Sequential scan runner.

Files are fetched and analyzed one at a time, in order, with a fixed pause
before each GitHub request to stay clear of secondary rate limits.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..errors import AnalysisError, AuthError, ContentSourceError
from ..models import Finding, ScanProgress, Severity
from .session import ScanSession, ScanStatus

logger = logging.getLogger(__name__)

Analyzer = Callable[[str, str], Awaitable[List[Dict[str, Any]]]]
ProgressCallback = Callable[[ScanProgress], None]

DEFAULT_PACING_SECONDS = 0.2
DEFAULT_MAX_FILE_BYTES = 100_000


class ScanRunner:
    """Runs the per-file fetch/analyze loop for a session.

    Args:
        client: Content source with ``get_file_content(ref, path)``
        recorder: Optional ledger with ``open_scan(repo_url)`` and
            ``complete_scan(scan_id, findings_count)``
        pacing_seconds: Pause before every file request
        max_file_bytes: Files above this size are skipped
    """

    def __init__(self, client, recorder=None,
                 pacing_seconds: float = DEFAULT_PACING_SECONDS,
                 max_file_bytes: int = DEFAULT_MAX_FILE_BYTES):
        self.client = client
        self.recorder = recorder
        self.pacing_seconds = pacing_seconds
        self.max_file_bytes = max_file_bytes

    async def run(self, session: ScanSession, analyze: Analyzer,
                  on_progress: Optional[ProgressCallback] = None) -> List[Finding]:
        """
        Scan every eligible file of the session.

        Only an ``AuthError`` while fetching a file aborts the batch; every
        other per-file problem is logged, recorded as a session warning and
        skipped.

        Args:
            session: Session holding the repository reference and eligible files
            analyze: Awaitable ``(file_content, file_path) -> raw findings``
            on_progress: Called once per file, before it is processed

        Returns:
            Findings in file order, then backend order, with ids ``1..K``
        """
        files = list(session.eligible_files)
        total = len(files)
        session.status = ScanStatus.SCANNING
        session.findings = []
        # Per-file warnings belong to one scan; fetch-stage warnings stay
        session.warnings = [w for w in session.warnings if w.file is None]

        if self.recorder is not None:
            session.scan_record_id = await asyncio.to_thread(
                self.recorder.open_scan, session.repo_ref.html_url
            )

        logger.info("Starting scan of %s: %d files", session.repo_ref, total)
        next_id = 1

        for index, eligible in enumerate(files, start=1):
            path = eligible.path
            if on_progress is not None:
                on_progress(ScanProgress(index=index, total=total, path=path))

            await asyncio.sleep(self.pacing_seconds)

            try:
                content = await asyncio.to_thread(self.client.get_file_content, session.repo_ref, path)
            except AuthError:
                logger.error("Authentication failed while fetching %s; aborting scan", path)
                raise
            except ContentSourceError as e:
                logger.warning("Skipping %s: %s", path, e)
                session.warn(e.user_message, file=path)
                continue

            if content.size_bytes > self.max_file_bytes:
                logger.warning("Skipping large file: %s (%d bytes)", path, content.size_bytes)
                continue

            text = content.decode()
            if not text:
                logger.warning("Skipping empty file: %s", path)
                continue

            try:
                raw_findings = await analyze(text, path)
            except AnalysisError as e:
                logger.warning("Error scanning file %s: %s", path, e.reason)
                session.warn(e.user_message, file=path)
                continue

            for raw in raw_findings or []:
                finding = self._to_finding(next_id, path, raw)
                if finding is None:
                    continue
                session.findings.append(finding)
                next_id += 1

        if self.recorder is not None:
            await asyncio.to_thread(
                self.recorder.complete_scan, session.scan_record_id, len(session.findings)
            )

        session.status = ScanStatus.COMPLETED
        logger.info(
            "Scan of %s complete: %d findings across %d files",
            session.repo_ref, len(session.findings), total
        )
        return list(session.findings)

    @staticmethod
    def _to_finding(finding_id: int, path: str, raw: Dict[str, Any]) -> Optional[Finding]:
        """Build a ``Finding`` from a backend entry.

        The backend's ``id`` and ``file`` are ignored: ids come from the
        runner's counter and the file is always the one being processed.
        """
        try:
            line = int(raw["line"])
            severity = Severity.parse(raw.get("severity"))
            description = str(raw["description"]).strip()
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            logger.warning("Dropping malformed finding in %s: %s (%r)", path, e, raw)
            return None
        if line < 1:
            logger.warning("Dropping finding with line %d in %s", line, path)
            return None
        if not description:
            logger.warning("Dropping finding without description in %s", path)
            return None

        remediation = raw.get("remediation")
        return Finding(
            id=finding_id,
            file=path,
            line=line,
            severity=severity,
            description=description,
            remediation=str(remediation) if remediation else None
        )
