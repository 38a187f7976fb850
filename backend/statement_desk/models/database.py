"""
Database models for the money-transfer statement tracker.
"""

from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import (
    DateTime, Integer, String, Numeric,
    ForeignKey, Column, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship, validates
from sqlalchemy.sql import func


Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class StatementStatus(str, Enum):
    """Statement workflow status (transitions are unguarded)."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Currency(str, Enum):
    """Supported transfer currencies."""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    RUB = "RUB"
    JPY = "JPY"
    CNY = "CNY"
    CHF = "CHF"
    CAD = "CAD"
    AUD = "AUD"


class Sender(Base):
    """Transfer sender, unique by passport number."""
    __tablename__ = 'senders'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_fullname = Column(String(255), nullable=False)
    sender_passport = Column(String(64), unique=True, nullable=False, index=True)

    statements = relationship("Statement", back_populates="sender")


class Receiver(Base):
    """Transfer beneficiary, unique by account number."""
    __tablename__ = 'receivers'

    id = Column(Integer, primary_key=True, autoincrement=True)
    receiver_fullname = Column(String(255), nullable=False)
    receiver_account_number = Column(String(64), unique=True, nullable=False, index=True)
    receiver_swift = Column(String(11), nullable=False)

    statements = relationship("Statement", back_populates="receiver")

    @validates('receiver_swift')
    def validate_swift(self, key, swift):
        """Store SWIFT/BIC codes upper-cased without surrounding spaces."""
        return swift.strip().upper() if swift else swift


class Statement(Base):
    """Money-transfer statement."""
    __tablename__ = 'statements'

    id = Column(Integer, primary_key=True, autoincrement=True)
    sender_id = Column(Integer, ForeignKey('senders.id'), nullable=False, index=True)
    receiver_id = Column(Integer, ForeignKey('receivers.id'), nullable=False, index=True)
    amount = Column(Numeric(18, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False,
                    default=StatementStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow,
                        server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow,
                        server_default=func.now(), onupdate=_utcnow, nullable=False)

    sender = relationship("Sender", back_populates="statements")
    receiver = relationship("Receiver", back_populates="statements")

    __table_args__ = (
        CheckConstraint('amount >= 0', name='check_statement_amount_positive'),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'COMPLETED', 'FAILED', 'CANCELLED')",
            name='check_valid_statement_status'),
        Index('idx_statement_status_created', 'status', 'created_at'),
    )
