"""
Data models shared across the scan pipeline.
"""
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """Finding severity levels, most severe first."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Case-insensitive lookup; raises ``ValueError`` for unknown values."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown severity: {value!r}")

    @property
    def rank(self) -> int:
        return list(Severity).index(self)


@dataclass(frozen=True)
class RepositoryReference:
    """An (owner, name) pair identifying a GitHub repository."""
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return f"https://github.com/{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class FileEntry:
    """One entry of a recursive git tree listing."""
    path: str
    size_bytes: int = 0
    kind: str = "blob"  # "blob" | "tree"

    @property
    def is_blob(self) -> bool:
        return self.kind == "blob"


@dataclass(frozen=True)
class EligibleFile:
    """A blob selected for analysis, with its display size."""
    path: str
    size_bytes: int
    formatted_size: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Finding:
    """One potential vulnerability, attributed to a file and line."""
    id: int
    file: str
    line: int
    severity: Severity
    description: str
    remediation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.value
        return data


@dataclass(frozen=True)
class ScanWarning:
    """A non-fatal problem recorded during a fetch or scan."""
    message: str
    file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScanProgress:
    """Emitted once per file, before the file is processed."""
    index: int  # 1-based
    total: int
    path: str

    @property
    def description(self) -> str:
        return f"Analyzing {self.path} ({self.index}/{self.total})"
