"""
Credit and scan ledger.

Balances, the transaction journal and the scan history live in the
database. Every operation runs in its own short transaction so the ledger
can be used from long-running scans without holding a session open.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..errors import InsufficientCreditsError
from . import models
from .database import SessionLocal

logger = logging.getLogger(__name__)

SCAN_RUNNING = "running"
SCAN_COMPLETED = "completed"
SCAN_FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CreditLedger:
    """Credit balances and scan records backed by SQLAlchemy.

    Args:
        session_factory: Callable returning a new ORM session
        signup_credits: Balance given to a profile the first time it is seen
    """

    def __init__(self, session_factory=SessionLocal, signup_credits: int = 0):
        self.session_factory = session_factory
        self.signup_credits = signup_credits

    @contextmanager
    def _session(self):
        db: Session = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _ensure_profile(self, db: Session, user_id: str) -> models.Profile:
        profile = db.query(models.Profile).filter(models.Profile.id == user_id).first()
        if profile is None:
            profile = models.Profile(id=user_id, credits=self.signup_credits)
            db.add(profile)
            db.flush()
            logger.info("Created profile %s with %d credits", user_id, self.signup_credits)
        return profile

    def _record(self, db: Session, user_id: str, amount: int, type_: str, description: str) -> None:
        db.add(models.CreditTransaction(
            user_id=user_id,
            amount=amount,
            type=type_,
            description=description
        ))

    # --- balances ---

    def get_balance(self, user_id: str) -> int:
        with self._session() as db:
            return self._ensure_profile(db, user_id).credits

    def add_credits(self, user_id: str, amount: int, description: str = "Credit purchase",
                    type_: str = "purchase") -> int:
        """Increase the balance and journal the movement. Returns the new balance."""
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        with self._session() as db:
            profile = self._ensure_profile(db, user_id)
            db.query(models.Profile).filter(models.Profile.id == user_id).update(
                {models.Profile.credits: models.Profile.credits + amount},
                synchronize_session=False
            )
            self._record(db, user_id, amount, type_, description)
            db.flush()
            db.refresh(profile)
            logger.info("Added %d credits to %s (%s)", amount, user_id, type_)
            return profile.credits

    def refund_credits(self, user_id: str, amount: int, description: str = "Scan refund") -> int:
        return self.add_credits(user_id, amount, description=description, type_="refund")

    def deduct_credits(self, user_id: str, amount: int = 1, description: str = "Vulnerability scan") -> int:
        """
        Take credits if, and only if, the balance covers them.

        The check and the decrement are one conditional UPDATE, so two scans
        racing on the same account cannot drive the balance below zero.

        Raises:
            InsufficientCreditsError: if the balance is lower than ``amount``
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        with self._session() as db:
            profile = self._ensure_profile(db, user_id)
            updated = db.query(models.Profile).filter(
                models.Profile.id == user_id,
                models.Profile.credits >= amount
            ).update(
                {models.Profile.credits: models.Profile.credits - amount},
                synchronize_session=False
            )
            db.flush()
            db.refresh(profile)
            if not updated:
                logger.warning("Insufficient credits for %s: has %d, needs %d",
                               user_id, profile.credits, amount)
                raise InsufficientCreditsError(user_id, amount, profile.credits)

            self._record(db, user_id, -amount, "deduct", description)
            logger.info("Deducted %d credits from %s", amount, user_id)
            return profile.credits

    def list_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.query(models.CreditTransaction).filter(
                models.CreditTransaction.user_id == user_id
            ).order_by(models.CreditTransaction.created_at.desc()).all()
            return [
                {
                    "id": t.id,
                    "amount": t.amount,
                    "type": t.type,
                    "description": t.description,
                    "created_at": t.created_at.isoformat() if t.created_at else None
                }
                for t in rows
            ]

    # --- scan records ---

    def open_scan(self, user_id: str, repository_url: str, credits_used: int = 1) -> str:
        with self._session() as db:
            self._ensure_profile(db, user_id)
            record = models.ScanRecord(
                user_id=user_id,
                repository_url=repository_url,
                status=SCAN_RUNNING,
                credits_used=credits_used,
                started_at=_utcnow()
            )
            db.add(record)
            db.flush()
            logger.info("Opened scan record %s for %s", record.id, repository_url)
            return record.id

    def _finish_scan(self, scan_id: str, status: str, findings_count: Optional[int] = None,
                     error_message: Optional[str] = None) -> None:
        with self._session() as db:
            record = db.query(models.ScanRecord).filter(models.ScanRecord.id == scan_id).first()
            if record is None:
                logger.error("Scan record %s not found", scan_id)
                return
            record.status = status
            record.completed_at = _utcnow()
            if findings_count is not None:
                record.findings_count = findings_count
            if error_message is not None:
                record.error_message = error_message

    def complete_scan(self, scan_id: str, findings_count: int) -> None:
        self._finish_scan(scan_id, SCAN_COMPLETED, findings_count=findings_count)

    def fail_scan(self, scan_id: str, error_message: str) -> None:
        self._finish_scan(scan_id, SCAN_FAILED, error_message=error_message)

    def get_scan(self, scan_id: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            record = db.query(models.ScanRecord).filter(models.ScanRecord.id == scan_id).first()
            return self._scan_to_dict(record) if record else None

    def list_scans(self, user_id: str) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.query(models.ScanRecord).filter(
                models.ScanRecord.user_id == user_id
            ).order_by(models.ScanRecord.started_at.desc()).all()
            return [self._scan_to_dict(r) for r in rows]

    @staticmethod
    def _scan_to_dict(record: models.ScanRecord) -> Dict[str, Any]:
        return {
            "id": record.id,
            "repository_url": record.repository_url,
            "status": record.status,
            "credits_used": record.credits_used,
            "findings_count": record.findings_count,
            "error_message": record.error_message,
            "started_at": record.started_at.isoformat() if record.started_at else None,
            "completed_at": record.completed_at.isoformat() if record.completed_at else None
        }

    def recorder_for(self, user_id: str, credits_used: int = 1) -> "ScanRecorder":
        return ScanRecorder(self, user_id, credits_used)


class ScanRecorder:
    """Binds the ledger to one user for the scan runner's lifecycle hooks."""

    def __init__(self, ledger: CreditLedger, user_id: str, credits_used: int = 1):
        self.ledger = ledger
        self.user_id = user_id
        self.credits_used = credits_used

    def open_scan(self, repository_url: str) -> str:
        return self.ledger.open_scan(self.user_id, repository_url, self.credits_used)

    def complete_scan(self, scan_id: str, findings_count: int) -> None:
        self.ledger.complete_scan(scan_id, findings_count)
