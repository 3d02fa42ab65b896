from dataclasses import dataclass
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
import logging

from ...errors import ScanStateError
from ...file_filter import format_file_size
from ...models import ScanProgress
from ...reports.reporter import FindingReporter
from ...scanner.pipeline import ScanPipeline, fetch_files as fetch_stage, open_session
from ...scanner.session import ScanSession, SessionStore
from ..dependencies import get_client_factory, get_ledger, get_pipeline, get_store
from ..ledger import CreditLedger

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"]
)


class FetchRequest(BaseModel):
    repo_url: str
    github_token: str
    owner: Optional[str] = None  # Starting a new session for the same owner discards the old one


class ScanRequest(BaseModel):
    user_id: str


@dataclass
class LiveSession:
    session: ScanSession
    client: Any
    reporter: Optional[FindingReporter] = None
    progress: Optional[ScanProgress] = None

    def close(self) -> None:
        self.client.close()


def _session_summary(live: LiveSession) -> dict:
    session = live.session
    return {
        "session_id": session.id,
        "repository": session.repo_ref.full_name,
        "repository_url": session.repo_ref.html_url,
        "default_branch": session.default_branch,
        "status": session.status.value,
        "finished": session.is_finished,
        "file_count": len(session.eligible_files),
        "total_size": session.total_size,
        "total_size_formatted": format_file_size(session.total_size),
        "truncated": session.truncated,
        "findings_count": len(session.findings),
        "warnings": [w.to_dict() for w in session.warnings],
        "progress": {
            "index": live.progress.index,
            "total": live.progress.total,
            "path": live.progress.path
        } if live.progress else None,
        "error": session.error
    }


def _get_live(session_id: str, store: SessionStore) -> LiveSession:
    live = store.get(session_id)
    if live is None:
        raise HTTPException(status_code=404, detail="Scan session not found")
    return live


@router.post("/")
def fetch_files(
    request: FetchRequest,
    store: SessionStore = Depends(get_store),
    client_factory=Depends(get_client_factory)
):
    """Resolve a repository and list its scannable files."""
    if not request.github_token:
        raise HTTPException(status_code=400, detail="GitHub Personal Access Token is required.")

    session = open_session(request.repo_url)
    client = client_factory(request.github_token)
    try:
        fetch_stage(session, client)
    except Exception:
        client.close()
        raise

    live = store.add(session.id, LiveSession(session=session, client=client), owner=request.owner)
    summary = _session_summary(live)
    summary["files"] = [f.to_dict() for f in session.eligible_files]
    return summary


@router.get("/{session_id}")
def get_session(session_id: str, store: SessionStore = Depends(get_store)):
    """Get the status of a session."""
    return _session_summary(_get_live(session_id, store))


@router.delete("/{session_id}")
def discard_session(session_id: str, store: SessionStore = Depends(get_store)):
    """Drop a session. In-flight work keeps running but its results are discarded."""
    if not store.discard(session_id):
        raise HTTPException(status_code=404, detail="Scan session not found")
    return {"status": "discarded"}


@router.post("/{session_id}/scan")
async def start_scan(
    session_id: str,
    request: ScanRequest,
    store: SessionStore = Depends(get_store),
    pipeline: ScanPipeline = Depends(get_pipeline),
    ledger: CreditLedger = Depends(get_ledger)
):
    """Charge one credit and scan every eligible file of the session."""
    live = _get_live(session_id, store)
    session = live.session

    def on_progress(progress: ScanProgress) -> None:
        live.progress = progress
        logger.info(f"[{session.id}] {progress.description}")

    findings = await pipeline.scan(session, live.client, request.user_id, on_progress=on_progress)
    live.reporter = FindingReporter(live.client, session.repo_ref, findings)

    if findings:
        message = (f"Found {len(findings)} potential vulnerabilities across "
                   f"{len(session.eligible_files)} files. {pipeline.credit_cost} credit used.")
    else:
        message = (f"Scanned {len(session.eligible_files)} files. No vulnerabilities found. "
                   f"{pipeline.credit_cost} credit used.")

    return {
        "session_id": session.id,
        "status": session.status.value,
        "message": message,
        "scan_record_id": session.scan_record_id,
        "findings": [f.to_dict() for f in findings],
        "warnings": [w.to_dict() for w in session.warnings],
        "remaining_credits": ledger.get_balance(request.user_id)
    }


@router.get("/{session_id}/findings")
def get_findings(session_id: str, store: SessionStore = Depends(get_store)):
    """Findings of the last scan, grouped for presentation."""
    live = _get_live(session_id, store)
    if live.reporter is None:
        raise ScanStateError("This repository has not been scanned yet.")

    reporter = live.reporter
    return {
        "session_id": session_id,
        "total": len(reporter.findings),
        "severity_counts": reporter.severity_counts(),
        "by_severity": {
            severity.value: [f.to_dict() for f in items]
            for severity, items in reporter.group_by_severity().items()
        },
        "by_file": {
            path: [f.id for f in items]
            for path, items in reporter.group_by_file().items()
        }
    }


@router.get("/{session_id}/findings/{finding_id}/source")
async def get_finding_source(session_id: str, finding_id: int, store: SessionStore = Depends(get_store)):
    """Full text of the file a finding points at, loaded on first request."""
    live = _get_live(session_id, store)
    if live.reporter is None:
        raise ScanStateError("This repository has not been scanned yet.")

    try:
        finding = live.reporter.get_finding(finding_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Finding not found")

    content = await live.reporter.load_source(finding)
    return {
        "finding": finding.to_dict(),
        "file": finding.file,
        "content": content,
        "line_text": live.reporter.get_line(finding)
    }
