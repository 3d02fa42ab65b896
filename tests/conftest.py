"""Shared fixtures: fake GitHub client, fake analyzer, in-memory ledger."""

from __future__ import annotations

import base64
import os
from typing import Any

# Keep the app's module-level engine off the filesystem
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from vulncheck.api import models
from vulncheck.api.ledger import CreditLedger
from vulncheck.errors import AnalysisError
from vulncheck.github.models import FileContent, FileTree, RepositoryMetadata
from vulncheck.models import FileEntry, RepositoryReference


def encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def content(path: str, text: str | None, size: int | None = None) -> FileContent:
    """FileContent as the contents API would return it."""
    if text is None:
        return FileContent(path=path, content_base64=None, size_bytes=size or 0)
    return FileContent(
        path=path,
        content_base64=encode(text),
        size_bytes=size if size is not None else len(text.encode("utf-8")),
    )


class FakeGitHub:
    """In-memory stand-in for GitHubAPI.

    ``files`` maps path -> FileContent or an exception instance to raise.
    """

    def __init__(self, entries: list[FileEntry] | None = None, files: dict[str, Any] | None = None,
                 truncated: bool = False, default_branch: str = "main",
                 metadata_error: Exception | None = None, tree_error: Exception | None = None):
        self.entries = entries or []
        self.files = files or {}
        self.truncated = truncated
        self.default_branch = default_branch
        self.metadata_error = metadata_error
        self.tree_error = tree_error
        self.calls: list[tuple[str, str]] = []
        self.close_count = 0

    def get_repository_metadata(self, ref: RepositoryReference) -> RepositoryMetadata:
        self.calls.append(("metadata", ref.full_name))
        if self.metadata_error:
            raise self.metadata_error
        return RepositoryMetadata(full_name=ref.full_name, default_branch=self.default_branch)

    def get_file_tree(self, ref: RepositoryReference, branch: str) -> FileTree:
        self.calls.append(("tree", branch))
        if self.tree_error:
            raise self.tree_error
        return FileTree(entries=list(self.entries), truncated=self.truncated)

    def get_file_content(self, ref: RepositoryReference, path: str) -> FileContent:
        self.calls.append(("content", path))
        result = self.files.get(path)
        if isinstance(result, Exception):
            raise result
        if result is None:
            return FileContent(path=path, content_base64=None, size_bytes=0)
        return result

    def content_calls(self) -> list[str]:
        return [target for kind, target in self.calls if kind == "content"]

    def close(self) -> None:
        self.close_count += 1


class FakeAnalyzer:
    """Async analyzer returning canned vulnerabilities per path."""

    def __init__(self, responses: dict[str, Any] | None = None):
        self.responses = responses or {}
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, file_content: str, file_path: str):
        self.calls.append((file_path, file_content))
        result = self.responses.get(file_path, [])
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def repo_ref() -> RepositoryReference:
    return RepositoryReference(owner="acme", name="widgets")


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def ledger(session_factory) -> CreditLedger:
    return CreditLedger(session_factory)


@pytest.fixture
def funded_ledger(ledger) -> CreditLedger:
    ledger.add_credits("user-1", 5)
    return ledger


@pytest.fixture
def analysis_error():
    def make(path: str, reason: str = "backend unavailable") -> AnalysisError:
        return AnalysisError(path, reason)
    return make
