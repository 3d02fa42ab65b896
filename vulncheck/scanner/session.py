"""
Scan session state.

A ``ScanSession`` holds everything about one fetch-then-scan cycle and is
passed explicitly through the pipeline. Nothing here is persisted; only the
credit ledger outlives a session.
"""
import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import EligibleFile, Finding, RepositoryReference, ScanWarning

logger = logging.getLogger(__name__)


class ScanStatus(str, Enum):
    """Lifecycle of a scan session."""
    PENDING = "pending"
    FETCHING_TREE = "fetching_tree"
    SCANNING = "scanning"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ScanSession:
    """One repository's fetch/scan cycle."""
    repo_ref: RepositoryReference
    locator: str = ""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: ScanStatus = ScanStatus.PENDING
    default_branch: Optional[str] = None
    eligible_files: List[EligibleFile] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    warnings: List[ScanWarning] = field(default_factory=list)
    truncated: bool = False
    files_fetched: bool = False
    total_size: int = 0
    scan_record_id: Optional[str] = None
    error: Optional[str] = None

    def warn(self, message: str, file: Optional[str] = None) -> None:
        self.warnings.append(ScanWarning(message=message, file=file))

    def fail(self, message: str) -> None:
        self.status = ScanStatus.FAILED
        self.error = message

    @property
    def is_finished(self) -> bool:
        return self.status in (ScanStatus.COMPLETED, ScanStatus.FAILED)


class SessionStore:
    """In-memory registry of live sessions.

    Values are whatever the caller wants to keep alongside a session (the
    API keeps the session, its GitHub client and its reporter). Starting a
    new session under the same owner key discards the previous one. Once
    ``max_sessions`` is reached the least recently used session is evicted.
    Every value that leaves the store is closed if it has a ``close()``.
    """

    def __init__(self, max_sessions: int = 100):
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self.max_sessions = max_sessions
        self._items: "OrderedDict[str, Any]" = OrderedDict()
        self._owners: Dict[str, str] = {}
        self._lock = threading.Lock()

    def add(self, session_id: str, value: Any, owner: Optional[str] = None) -> Any:
        dropped = []
        with self._lock:
            if owner is not None:
                previous = self._owners.pop(owner, None)
                if previous is not None and previous != session_id:
                    dropped.append(self._pop(previous))
                    logger.info("Discarded session %s replaced by %s", previous, session_id)
                self._owners[owner] = session_id
            if session_id in self._items:
                old = self._items.pop(session_id)
                if old is not value:
                    dropped.append(old)
            self._items[session_id] = value
            while len(self._items) > self.max_sessions:
                evicted_id = next(iter(self._items))
                dropped.append(self._pop(evicted_id))
                logger.info("Evicted idle session %s", evicted_id)
        self._close_all(dropped)
        return value

    def get(self, session_id: str) -> Optional[Any]:
        with self._lock:
            value = self._items.get(session_id)
            if value is not None:
                self._items.move_to_end(session_id)
            return value

    def discard(self, session_id: str) -> bool:
        with self._lock:
            value = self._pop(session_id)
        self._close_all([value])
        return value is not None

    def close(self) -> None:
        """Drop and close every session."""
        with self._lock:
            values = list(self._items.values())
            self._items.clear()
            self._owners.clear()
        self._close_all(values)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _pop(self, session_id: str) -> Optional[Any]:
        # Caller holds the lock
        value = self._items.pop(session_id, None)
        for owner, sid in list(self._owners.items()):
            if sid == session_id:
                del self._owners[owner]
        return value

    @staticmethod
    def _close_all(values: List[Any]) -> None:
        for value in values:
            close = getattr(value, "close", None)
            if close is None:
                continue
            try:
                close()
            except Exception:
                logger.exception("Error closing session resources")
