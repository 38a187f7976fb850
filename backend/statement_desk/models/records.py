"""Read-only statement snapshots handed to the PDF documents and analytics.

Detached from the ORM session so document generation never triggers lazy loads.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SenderInfo:
    sender_fullname: str
    sender_passport: str
    id: Optional[int] = None


@dataclass(frozen=True)
class ReceiverInfo:
    receiver_fullname: str
    receiver_account_number: str
    receiver_swift: str
    id: Optional[int] = None


@dataclass(frozen=True)
class StatementRecord:
    """Fully resolved statement: amount is a decimal-as-string."""
    id: int
    sender: SenderInfo
    receiver: ReceiverInfo
    amount: str
    currency: str
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_orm(cls, statement) -> "StatementRecord":  # type: ignore[no-untyped-def]
        amount = statement.amount
        if isinstance(amount, Decimal):
            amount = format(amount, "f")
        return cls(
            id=statement.id,
            sender=SenderInfo(
                id=statement.sender.id,
                sender_fullname=statement.sender.sender_fullname,
                sender_passport=statement.sender.sender_passport,
            ),
            receiver=ReceiverInfo(
                id=statement.receiver.id,
                receiver_fullname=statement.receiver.receiver_fullname,
                receiver_account_number=statement.receiver.receiver_account_number,
                receiver_swift=statement.receiver.receiver_swift,
            ),
            amount=str(amount),
            currency=statement.currency,
            status=statement.status,
            created_at=statement.created_at,
            updated_at=statement.updated_at,
        )

    def to_api(self) -> Dict[str, Any]:
        """Shape expected by the dashboard frontend (camelCase keys)."""
        return {
            "id": self.id,
            "senderId": self.sender.id,
            "receiverId": self.receiver.id,
            "amount": self.amount,
            "currency": self.currency,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "sender": {
                "id": self.sender.id,
                "senderFullname": self.sender.sender_fullname,
                "senderPassport": self.sender.sender_passport,
            },
            "receiver": {
                "id": self.receiver.id,
                "receiverFullname": self.receiver.receiver_fullname,
                "receiverAccountNumber": self.receiver.receiver_account_number,
                "receiverSwift": self.receiver.receiver_swift,
            },
        }
