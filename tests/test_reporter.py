"""Tests for finding presentation and lazy source loading."""

from __future__ import annotations

import asyncio

import pytest

from vulncheck.errors import TransportError
from vulncheck.models import Finding, Severity
from vulncheck.reports.reporter import EMPTY_FILE_PLACEHOLDER, FindingReporter

from conftest import FakeGitHub, content

FINDINGS = [
    Finding(id=1, file="a.py", line=2, severity=Severity.LOW, description="weak hash"),
    Finding(id=2, file="b.js", line=1, severity=Severity.CRITICAL, description="eval of input"),
    Finding(id=3, file="a.py", line=3, severity=Severity.HIGH, description="sql injection"),
]


def _reporter(client, repo_ref, findings=FINDINGS) -> FindingReporter:
    return FindingReporter(client, repo_ref, findings)


def test_findings_are_read_only(repo_ref):
    reporter = _reporter(FakeGitHub(), repo_ref)
    assert isinstance(reporter.findings, tuple)
    assert [f.id for f in reporter.findings] == [1, 2, 3]
    assert reporter.get_finding(2).file == "b.js"
    with pytest.raises(KeyError):
        reporter.get_finding(42)


def test_grouping(repo_ref):
    reporter = _reporter(FakeGitHub(), repo_ref)

    by_file = reporter.group_by_file()
    assert list(by_file) == ["a.py", "b.js"]
    assert [f.id for f in by_file["a.py"]] == [1, 3]

    by_severity = reporter.group_by_severity()
    assert list(by_severity) == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]
    assert [f.id for f in by_severity[Severity.CRITICAL]] == [2]
    assert reporter.severity_counts() == {"Critical": 1, "High": 1, "Medium": 0, "Low": 1}


def test_source_cached_per_file(repo_ref):
    client = FakeGitHub(files={"a.py": content("a.py", "import md5\nx = md5(p)\nq = f'{i}'\n")})
    reporter = _reporter(client, repo_ref)

    async def load_both():
        first = await reporter.load_source(reporter.get_finding(1))
        second = await reporter.load_source(reporter.get_finding(3))
        return first, second

    first, second = asyncio.run(load_both())

    assert first == second
    assert client.content_calls() == ["a.py"]
    assert reporter.get_line(reporter.get_finding(1)) == "x = md5(p)"
    assert reporter.get_line(reporter.get_finding(3)) == "q = f'{i}'"


def test_concurrent_requests_share_one_fetch(repo_ref):
    client = FakeGitHub(files={"a.py": content("a.py", "pass\n")})
    reporter = _reporter(client, repo_ref)

    async def load_concurrently():
        return await asyncio.gather(
            reporter.load_source(reporter.get_finding(1)),
            reporter.load_source(reporter.get_finding(3)),
            reporter.load_source(reporter.get_finding(1)),
        )

    results = asyncio.run(load_concurrently())

    assert results == ["pass\n"] * 3
    assert client.content_calls() == ["a.py"]
    assert reporter.fetch_count == 1


def test_empty_file_placeholder(repo_ref):
    client = FakeGitHub(files={"b.js": content("b.js", None)})
    reporter = _reporter(client, repo_ref)
    assert asyncio.run(reporter.load_source(reporter.get_finding(2))) == EMPTY_FILE_PLACEHOLDER


def test_errors_are_not_cached(repo_ref):
    client = FakeGitHub(files={"a.py": TransportError("content", "acme/widgets:a.py", 502)})
    reporter = _reporter(client, repo_ref)

    with pytest.raises(TransportError):
        asyncio.run(reporter.load_source(reporter.get_finding(1)))
    assert reporter.cached_source("a.py") is None

    client.files["a.py"] = content("a.py", "fixed\n")
    assert asyncio.run(reporter.load_source(reporter.get_finding(1))) == "fixed\n"
    assert client.content_calls() == ["a.py", "a.py"]


def test_get_line_before_load_and_out_of_range(repo_ref):
    client = FakeGitHub(files={"b.js": content("b.js", "")})
    findings = [Finding(id=1, file="b.js", line=50, severity=Severity.LOW, description="x")]
    reporter = _reporter(client, repo_ref, findings)

    assert reporter.get_line(findings[0]) is None
    asyncio.run(reporter.load_source(findings[0]))
    assert reporter.get_line(findings[0]) is None
