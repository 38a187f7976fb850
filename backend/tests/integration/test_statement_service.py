import copy

import pytest
from sqlalchemy import func, select

from statement_desk.models.database import Receiver, Sender
from statement_desk.services.statement_service import (
    StatementNotFound,
    ValidationError,
    create_statement_service,
    delete_statement_service,
    get_statement_service,
    list_statements_service,
    replace_statement_service,
    update_statement_service,
)

pytestmark = [pytest.mark.integration]


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


@pytest.mark.asyncio
async def test_create_returns_pending_snapshot(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    assert record.id
    assert record.status == "PENDING"
    assert record.amount == "2500.50"
    assert record.currency == "EUR"
    assert record.sender.sender_passport == "4001 654321"
    assert record.receiver.receiver_swift == "COBADEFFXXX"
    assert record.created_at is not None


@pytest.mark.asyncio
async def test_known_passport_and_account_are_reused(db_session, service_payload):
    first = await create_statement_service(db_session, service_payload)
    again = copy.deepcopy(service_payload)
    again["sender"]["sender_fullname"] = "Петров Пётр Петрович"
    again["amount"] = "10"
    second = await create_statement_service(db_session, again)

    assert second.sender.id == first.sender.id
    assert second.receiver.id == first.receiver.id
    assert second.sender.sender_fullname == "Петров Пётр Петрович"
    assert await _count(db_session, Sender) == 1
    assert await _count(db_session, Receiver) == 1


@pytest.mark.asyncio
async def test_swift_is_stored_upper_case(db_session, service_payload):
    payload = copy.deepcopy(service_payload)
    payload["receiver"]["receiver_swift"] = " cobadeffxxx "
    record = await create_statement_service(db_session, payload)
    assert record.receiver.receiver_swift == "COBADEFFXXX"


@pytest.mark.asyncio
async def test_list_newest_first_with_status_filter(db_session, service_payload):
    first = await create_statement_service(db_session, service_payload)
    second = await create_statement_service(db_session, service_payload)
    await update_statement_service(db_session, first.id, {"status": "COMPLETED"})

    listed = await list_statements_service(db_session)
    assert [r.id for r in listed] == [second.id, first.id]

    completed = await list_statements_service(db_session, "COMPLETED")
    assert [r.id for r in completed] == [first.id]


@pytest.mark.asyncio
async def test_get_missing_statement(db_session):
    with pytest.raises(StatementNotFound):
        await get_statement_service(db_session, 999999)


@pytest.mark.asyncio
async def test_update_amount_and_status(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    updated = await update_statement_service(
        db_session, record.id, {"amount": "99.90", "status": "APPROVED"})
    assert updated.amount == "99.90"
    assert updated.status == "APPROVED"
    assert updated.currency == "EUR"


@pytest.mark.asyncio
async def test_update_renames_current_sender_in_place(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    updated = await update_statement_service(
        db_session, record.id, {"sender": {"sender_fullname": "Сидоров Сидор"}})
    assert updated.sender.id == record.sender.id
    assert updated.sender.sender_fullname == "Сидоров Сидор"


@pytest.mark.asyncio
async def test_update_new_passport_repoints_sender(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    updated = await update_statement_service(db_session, record.id, {
        "sender": {"sender_fullname": "Новиков Н.", "sender_passport": "7777 000001"},
        "receiver": {"receiver_account_number": "FR1420041010050500013M02606",
                     "receiver_fullname": "Jean Dupont", "receiver_swift": "BNPAFRPP"},
    })
    assert updated.sender.id != record.sender.id
    assert updated.sender.sender_passport == "7777 000001"
    assert updated.receiver.id != record.receiver.id
    assert updated.receiver.receiver_account_number == "FR1420041010050500013M02606"
    # previous parties are kept
    assert await _count(db_session, Sender) == 2
    assert await _count(db_session, Receiver) == 2


@pytest.mark.asyncio
async def test_update_without_data_is_rejected(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    with pytest.raises(ValidationError):
        await update_statement_service(db_session, record.id, {})
    with pytest.raises(ValidationError):
        await update_statement_service(db_session, record.id, {"amount": None, "status": None})


@pytest.mark.asyncio
async def test_update_with_empty_party_object_is_accepted(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    updated = await update_statement_service(db_session, record.id, {"sender": {}})
    assert updated.sender.id == record.sender.id
    assert updated.sender.sender_fullname == record.sender.sender_fullname
    assert updated.amount == record.amount
    assert updated.status == record.status


@pytest.mark.asyncio
async def test_update_missing_statement(db_session):
    with pytest.raises(StatementNotFound):
        await update_statement_service(db_session, 999999, {"amount": "1"})


@pytest.mark.asyncio
async def test_replace_keeps_status(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    await update_statement_service(db_session, record.id, {"status": "COMPLETED"})
    replacement = copy.deepcopy(service_payload)
    replacement.update(amount="10.00", currency="RUB")
    replaced = await replace_statement_service(db_session, record.id, replacement)
    assert replaced.status == "COMPLETED"
    assert replaced.amount == "10.00"
    assert replaced.currency == "RUB"


@pytest.mark.asyncio
async def test_delete_removes_statement_only(db_session, service_payload):
    record = await create_statement_service(db_session, service_payload)
    await delete_statement_service(db_session, record.id)
    with pytest.raises(StatementNotFound):
        await get_statement_service(db_session, record.id)
    assert await _count(db_session, Sender) == 1
    with pytest.raises(StatementNotFound):
        await delete_statement_service(db_session, record.id)
