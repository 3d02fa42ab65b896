"""
Fetch and scan stages, plus the credit policy around a scan.

Credit policy: one charge is taken when the scan starts, before the first
file request. A scan that completes keeps the charge even if some files
were skipped. A scan that fails, or is cancelled, is refunded in full.
"""
import asyncio
import logging
from typing import List, Optional

from ..errors import ScanStateError, VulnCheckError, describe_error
from ..file_filter import filter_files, format_file_size, total_size
from ..models import EligibleFile, Finding
from ..repo_reference import resolve
from .runner import (
    Analyzer,
    ProgressCallback,
    ScanRunner,
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_PACING_SECONDS,
)
from .session import ScanSession, ScanStatus

logger = logging.getLogger(__name__)

TRUNCATED_WARNING = "Repository is too large, some files may not be scanned."
INTERRUPTED_MESSAGE = "Scan was interrupted before it finished."


def open_session(locator: str) -> ScanSession:
    """Resolve the locator and start a fresh session. No network access."""
    return ScanSession(repo_ref=resolve(locator), locator=locator.strip())


def fetch_files(session: ScanSession, client) -> List[EligibleFile]:
    """
    Fetch metadata and the file tree, and select the eligible files.

    Any failure here aborts the stage: the session is marked failed with a
    user-facing message and the error is re-raised. A truncated tree is
    only a warning; the partial listing is used.

    Args:
        session: Session from ``open_session``
        client: Content source (``GitHubAPI``) authenticated for this session

    Returns:
        Eligible files in tree order
    """
    session.status = ScanStatus.FETCHING_TREE
    session.eligible_files = []
    session.findings = []
    session.warnings = []
    session.error = None
    session.files_fetched = False

    try:
        metadata = client.get_repository_metadata(session.repo_ref)
        tree = client.get_file_tree(session.repo_ref, metadata.default_branch)
    except VulnCheckError as e:
        logger.error("Fetch failed for %s: %s", session.repo_ref, e)
        session.fail(e.user_message)
        raise

    session.default_branch = metadata.default_branch
    session.truncated = tree.truncated
    if tree.truncated:
        session.warn(TRUNCATED_WARNING)

    session.eligible_files = filter_files(tree)
    session.total_size = total_size(session.eligible_files)
    session.files_fetched = True
    session.status = ScanStatus.PENDING

    logger.info(
        "Found %d scannable files of %d (%s total) in %s",
        len(session.eligible_files), tree.blob_count,
        format_file_size(session.total_size), session.repo_ref
    )
    return session.eligible_files


class ScanPipeline:
    """Drives a session from locator to findings.

    Args:
        ledger: ``CreditLedger`` used for charging and scan records
        analyze: Analysis capability, usually an ``AnalysisProvider``
        pacing_seconds: Pause before every file request
        max_file_bytes: Per-file size ceiling
        credit_cost: Credits charged per scan
    """

    def __init__(self, ledger, analyze: Analyzer,
                 pacing_seconds: float = DEFAULT_PACING_SECONDS,
                 max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
                 credit_cost: int = 1):
        self.ledger = ledger
        self.analyze = analyze
        self.pacing_seconds = pacing_seconds
        self.max_file_bytes = max_file_bytes
        self.credit_cost = credit_cost

    open_session = staticmethod(open_session)
    fetch_files = staticmethod(fetch_files)

    async def scan(self, session: ScanSession, client, user_id: str,
                   on_progress: Optional[ProgressCallback] = None) -> List[Finding]:
        """
        Charge a credit and run the scan.

        Raises:
            ScanStateError: if files were not fetched, there is nothing to
                scan, or a scan is already running
            InsufficientCreditsError: if the balance cannot cover the scan
        """
        if session.status == ScanStatus.SCANNING:
            raise ScanStateError("A scan is already running for this repository.")
        if not session.files_fetched:
            raise ScanStateError("Fetch the repository files before starting a scan.")
        if not session.eligible_files:
            raise ScanStateError("No scannable files were found in this repository.")

        # Claim the session before the first await so a second request is refused
        previous_status = session.status
        session.status = ScanStatus.SCANNING
        try:
            await asyncio.to_thread(
                self.ledger.deduct_credits, user_id, self.credit_cost, "Vulnerability scan"
            )
        except BaseException:
            session.status = previous_status
            raise

        runner = ScanRunner(
            client,
            recorder=self.ledger.recorder_for(user_id, credits_used=self.credit_cost),
            pacing_seconds=self.pacing_seconds,
            max_file_bytes=self.max_file_bytes
        )
        session.scan_record_id = None
        session.error = None

        try:
            findings = await runner.run(session, self.analyze, on_progress=on_progress)
        except Exception as e:
            message = describe_error(e)
            logger.error("Scan failed for %s: %s", session.repo_ref, message)
            await asyncio.to_thread(self._abort, session, user_id, message)
            raise
        except BaseException:
            # Cancelled or interrupted: the loop may be going away, settle synchronously
            logger.error("Scan of %s was interrupted", session.repo_ref)
            self._abort(session, user_id, INTERRUPTED_MESSAGE)
            raise

        return findings

    def _abort(self, session: ScanSession, user_id: str, message: str) -> None:
        """Mark the session and its record failed and refund the charge."""
        session.fail(message)
        if session.scan_record_id is not None:
            self.ledger.fail_scan(session.scan_record_id, message)
        self.ledger.refund_credits(user_id, self.credit_cost, "Refund for failed scan")
