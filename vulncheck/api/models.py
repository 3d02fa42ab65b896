import uuid

from sqlalchemy import CheckConstraint, Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class Profile(Base):
    """A user account's credit balance. Authentication lives elsewhere."""
    __tablename__ = "profiles"
    __table_args__ = (CheckConstraint("credits >= 0", name="ck_profiles_credits_non_negative"),)

    id = Column(String, primary_key=True)
    credits = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    transactions = relationship("CreditTransaction", back_populates="profile")
    scans = relationship("ScanRecord", back_populates="profile")


class CreditTransaction(Base):
    """Journal of every credit movement (purchase, deduct, refund)."""
    __tablename__ = "credit_transactions"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # Signed: negative for deductions
    type = Column(String, nullable=False)  # purchase, deduct, refund
    description = Column(Text)
    created_at = Column(DateTime, server_default=func.now())

    profile = relationship("Profile", back_populates="transactions")


class ScanRecord(Base):
    """History entry for one scan attempt."""
    __tablename__ = "scans"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, ForeignKey("profiles.id"), nullable=False, index=True)
    repository_url = Column(Text, nullable=False)
    status = Column(String, nullable=False, default="running")  # running, completed, failed
    credits_used = Column(Integer, default=1)
    findings_count = Column(Integer)
    error_message = Column(Text)
    started_at = Column(DateTime, server_default=func.now())
    completed_at = Column(DateTime)

    profile = relationship("Profile", back_populates="scans")
