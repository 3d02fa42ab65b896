"""Tests for saved scan reports."""

from __future__ import annotations

import json
import os

import pytest

from vulncheck.models import EligibleFile, Finding, Severity
from vulncheck.reports import ReportFormat, ReportGenerator
from vulncheck.scanner.session import ScanSession, ScanStatus


@pytest.fixture
def scanned_session(repo_ref) -> ScanSession:
    session = ScanSession(repo_ref=repo_ref, status=ScanStatus.COMPLETED)
    session.eligible_files = [
        EligibleFile(path="src/app.py", size_bytes=500, formatted_size="500 B"),
        EligibleFile(path="src/db.py", size_bytes=900, formatted_size="900 B"),
    ]
    session.findings = [
        Finding(id=1, file="src/db.py", line=12, severity=Severity.CRITICAL,
                description="SQL injection", remediation="Use bound parameters"),
        Finding(id=2, file="src/app.py", line=3, severity=Severity.LOW, description="Debug mode enabled"),
    ]
    session.warn("Could not scan src/big.py: backend unavailable", file="src/big.py")
    return session


def _read(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def test_markdown_report(tmp_path, scanned_session):
    path = ReportGenerator(str(tmp_path)).generate_report(scanned_session)

    assert os.path.basename(path).startswith("security_report_acme_widgets_")
    assert path.endswith(".md")
    text = _read(path)
    assert "# Security Scan Report - acme/widgets" in text
    assert "| Critical | 1 |" in text
    assert "**#1 [Critical] line 12** - SQL injection" in text
    assert "*Remediation:* Use bound parameters" in text
    assert "`src/big.py`: Could not scan src/big.py" in text


def test_json_report(tmp_path, scanned_session):
    path = ReportGenerator(str(tmp_path), ReportFormat.JSON).generate_report(scanned_session)

    data = json.loads(_read(path))
    assert data["repo_name"] == "acme/widgets"
    assert data["files_scanned"] == 2
    assert data["severity_counts"] == {"Critical": 1, "High": 0, "Medium": 0, "Low": 1}
    assert list(data["findings_by_severity"]) == ["Critical", "Low"]
    assert list(data["findings_by_file"]) == ["src/db.py", "src/app.py"]


def test_console_report_without_findings(tmp_path, repo_ref):
    session = ScanSession(repo_ref=repo_ref, status=ScanStatus.COMPLETED)
    path = ReportGenerator(str(tmp_path), "console").generate_report(session)

    assert path.endswith(".txt")
    text = _read(path)
    assert "Files scanned: 0" in text
    assert "No vulnerabilities found!" in text


def test_failed_scan_is_reported(tmp_path, repo_ref):
    session = ScanSession(repo_ref=repo_ref)
    session.fail("Authentication failed while fetching file content. Scan aborted.")

    text = _read(ReportGenerator(str(tmp_path)).generate_report(session))

    assert "**Scan failed:** Authentication failed" in text
    assert "No vulnerabilities found." in text
