"""Statement domain service layer.

Persistence and business rules for money-transfer statements. Routers call
these functions and translate the domain exceptions into HTTP errors.

Senders are identified by passport number and receivers by account number:
creating a statement for a known passport reuses (and renames) the existing
sender instead of inserting a duplicate.

All functions return detached :class:`StatementRecord` snapshots so callers
(JSON rendering, PDF generation) never touch a live session.
"""
from __future__ import annotations

from datetime import datetime, UTC
from decimal import Decimal
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from statement_desk.models.database import Receiver, Sender, Statement, StatementStatus
from statement_desk.models.records import StatementRecord
from statement_desk.utils.errors import ERROR_CODES

LOGGER = logging.getLogger("statement_service")

UPDATABLE_FIELDS = ("sender", "receiver", "amount", "currency", "status")


# ----------------------------- Domain Exceptions ----------------------------- #


class StatementNotFound(Exception):
    """Raised when a statement id does not exist."""
    code = ERROR_CODES["statement_not_found"]


class ValidationError(Exception):
    """Raised when a payload passes schema validation but breaks a domain rule."""
    code = ERROR_CODES["validation"]


# --------------------------------- Helpers ----------------------------------- #


def _statement_query():
    return select(Statement).options(
        selectinload(Statement.sender),
        selectinload(Statement.receiver),
    )


async def _load(db: AsyncSession, statement_id: int) -> Statement:
    result = await db.execute(
        _statement_query()
        .where(Statement.id == statement_id)
        .execution_options(populate_existing=True)
    )
    statement = result.scalar_one_or_none()
    if not statement:
        raise StatementNotFound(f"Statement {statement_id} not found")
    return statement


async def _upsert_sender(db: AsyncSession, fullname: Optional[str], passport: str) -> Sender:
    result = await db.execute(select(Sender).where(Sender.sender_passport == passport))
    sender = result.scalar_one_or_none()
    if sender is None:
        sender = Sender(sender_fullname=fullname or "", sender_passport=passport)
        db.add(sender)
        await db.flush()  # obtain id
    elif fullname:
        sender.sender_fullname = fullname
    return sender


async def _upsert_receiver(
    db: AsyncSession,
    fullname: Optional[str],
    account_number: str,
    swift: Optional[str],
) -> Receiver:
    result = await db.execute(
        select(Receiver).where(Receiver.receiver_account_number == account_number)
    )
    receiver = result.scalar_one_or_none()
    if receiver is None:
        receiver = Receiver(
            receiver_fullname=fullname or "",
            receiver_account_number=account_number,
            receiver_swift=swift or "",
        )
        db.add(receiver)
        await db.flush()
    else:
        if fullname:
            receiver.receiver_fullname = fullname
        if swift:
            receiver.receiver_swift = swift
    return receiver


async def _commit_and_reload(db: AsyncSession, statement_id: int) -> StatementRecord:
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return StatementRecord.from_orm(await _load(db, statement_id))


# ------------------------------ Public service ------------------------------- #


async def create_statement_service(db: AsyncSession, payload: Dict[str, Any]) -> StatementRecord:
    """Create a PENDING statement, upserting its sender and receiver.

    ``payload`` carries snake_case keys: ``sender`` {sender_fullname,
    sender_passport}, ``receiver`` {receiver_fullname, receiver_account_number,
    receiver_swift}, ``amount`` and ``currency``.
    """
    sender_in = payload["sender"]
    receiver_in = payload["receiver"]
    sender = await _upsert_sender(db, sender_in["sender_fullname"], sender_in["sender_passport"])
    receiver = await _upsert_receiver(
        db,
        receiver_in["receiver_fullname"],
        receiver_in["receiver_account_number"],
        receiver_in["receiver_swift"],
    )
    statement = Statement(
        sender_id=sender.id,
        receiver_id=receiver.id,
        amount=Decimal(str(payload["amount"])),
        currency=payload["currency"],
        status=StatementStatus.PENDING.value,
    )
    db.add(statement)
    await db.flush()
    LOGGER.info("Created statement %s sender=%s receiver=%s", statement.id, sender.id, receiver.id)
    return await _commit_and_reload(db, statement.id)


async def list_statements_service(db: AsyncSession, status: Optional[str] = None) -> List[StatementRecord]:
    """All statements, newest first, optionally filtered by status."""
    query = _statement_query().order_by(Statement.created_at.desc(), Statement.id.desc())
    if status:
        query = query.where(Statement.status == status)
    result = await db.execute(query)
    return [StatementRecord.from_orm(s) for s in result.scalars().all()]


async def get_statement_service(db: AsyncSession, statement_id: int) -> StatementRecord:
    return StatementRecord.from_orm(await _load(db, statement_id))


async def update_statement_service(
    db: AsyncSession, statement_id: int, payload: Dict[str, Any]
) -> StatementRecord:
    """Partial update.

    A changed passport (or account number) re-points the statement to the
    matching party, creating it when unknown; otherwise the current party is
    edited in place. Status changes are not restricted to any workflow.
    """
    if all(payload.get(field) is None for field in UPDATABLE_FIELDS):
        raise ValidationError("Нет данных для обновления")
    statement = await _load(db, statement_id)

    sender_in = payload.get("sender")
    if sender_in:
        passport = sender_in.get("sender_passport")
        fullname = sender_in.get("sender_fullname")
        if passport and passport != statement.sender.sender_passport:
            sender = await _upsert_sender(db, fullname, passport)
            statement.sender_id = sender.id
        elif fullname:
            statement.sender.sender_fullname = fullname

    receiver_in = payload.get("receiver")
    if receiver_in:
        account = receiver_in.get("receiver_account_number")
        fullname = receiver_in.get("receiver_fullname")
        swift = receiver_in.get("receiver_swift")
        if account and account != statement.receiver.receiver_account_number:
            receiver = await _upsert_receiver(db, fullname, account, swift)
            statement.receiver_id = receiver.id
        else:
            if fullname:
                statement.receiver.receiver_fullname = fullname
            if swift:
                statement.receiver.receiver_swift = swift

    if payload.get("amount") is not None:
        statement.amount = Decimal(str(payload["amount"]))
    if payload.get("currency"):
        statement.currency = payload["currency"]
    if payload.get("status"):
        statement.status = payload["status"]
    # Touch explicitly; onupdate does not fire when only related rows change
    statement.updated_at = datetime.now(UTC)
    LOGGER.info("Updated statement %s fields=%s", statement_id,
                sorted(k for k in UPDATABLE_FIELDS if payload.get(k)))
    return await _commit_and_reload(db, statement_id)


async def replace_statement_service(
    db: AsyncSession, statement_id: int, payload: Dict[str, Any]
) -> StatementRecord:
    """Replace sender, receiver, amount and currency; status is kept."""
    statement = await _load(db, statement_id)
    sender_in = payload["sender"]
    receiver_in = payload["receiver"]
    sender = await _upsert_sender(db, sender_in["sender_fullname"], sender_in["sender_passport"])
    receiver = await _upsert_receiver(
        db,
        receiver_in["receiver_fullname"],
        receiver_in["receiver_account_number"],
        receiver_in["receiver_swift"],
    )
    statement.sender_id = sender.id
    statement.receiver_id = receiver.id
    statement.amount = Decimal(str(payload["amount"]))
    statement.currency = payload["currency"]
    statement.updated_at = datetime.now(UTC)
    return await _commit_and_reload(db, statement_id)


async def delete_statement_service(db: AsyncSession, statement_id: int) -> None:
    result = await db.execute(select(Statement).where(Statement.id == statement_id))
    statement = result.scalar_one_or_none()
    if not statement:
        raise StatementNotFound(f"Statement {statement_id} not found")
    await db.delete(statement)
    await db.commit()
    LOGGER.info("Deleted statement %s", statement_id)


__all__ = [
    "StatementNotFound",
    "ValidationError",
    "create_statement_service",
    "list_statements_service",
    "get_statement_service",
    "update_statement_service",
    "replace_statement_service",
    "delete_statement_service",
]
