import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.contract]

API = "/api/v1/statements"


async def _create(client: AsyncClient, payload) -> dict:
    r = await client.post(API, json=payload)
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.mark.asyncio
async def test_create_statement_contract(async_client: AsyncClient, sample_statement_payload):
    r = await async_client.post(API, json=sample_statement_payload)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "success"
    data = body["data"]
    assert data["status"] == "PENDING"
    assert data["amount"] == "1500.00"
    assert data["currency"] == "USD"
    assert data["sender"]["senderFullname"] == "Иванов Иван Иванович"
    assert data["receiver"]["receiverSwift"] == "NWBKGB2L"
    assert data["senderId"] == data["sender"]["id"]
    assert data["createdAt"]


@pytest.mark.asyncio
async def test_create_accepts_snake_case_and_numeric_amount(async_client: AsyncClient):
    payload = {
        "sender": {"sender_fullname": "Petrov P.", "sender_passport": "1234 567890"},
        "receiver": {"receiver_fullname": "Li Wei", "receiver_account_number": "6222020200112233",
                     "receiver_swift": "ICBKCNBJ"},
        "amount": 88.5,
        "currency": "CNY",
    }
    data = await _create(async_client, payload)
    assert data["amount"] == "88.50"
    assert data["currency"] == "CNY"


@pytest.mark.asyncio
@pytest.mark.parametrize("patch", [
    {"amount": "-5"},
    {"amount": "0"},
    {"amount": "abc"},
    {"currency": "XYZ"},
    {"sender": {"senderFullname": "", "senderPassport": "1"}},
    {"receiver": None},
])
async def test_create_validation_errors(async_client: AsyncClient, sample_statement_payload, patch):
    payload = {**sample_statement_payload, **patch}
    r = await async_client.post(API, json=payload)
    assert r.status_code == 422, r.text
    body = r.json()
    assert body["status"] == "error"
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["path"] == API


@pytest.mark.asyncio
async def test_list_statements_with_total(async_client: AsyncClient, sample_statement_payload):
    first = await _create(async_client, sample_statement_payload)
    second = await _create(async_client, sample_statement_payload)

    r = await async_client.get(API)
    assert r.status_code == 200
    body = r.json()
    assert body["meta"]["total"] == 2
    assert [s["id"] for s in body["data"]] == [second["id"], first["id"]]

    r = await async_client.patch(f"{API}/{first['id']}", json={"status": "REJECTED"})
    assert r.status_code == 200, r.text
    r = await async_client.get(API, params={"status": "REJECTED"})
    assert [s["id"] for s in r.json()["data"]] == [first["id"]]


@pytest.mark.asyncio
async def test_get_statement_not_found(async_client: AsyncClient):
    r = await async_client.get(f"{API}/987654")
    assert r.status_code == 404
    error = r.json()["error"]
    assert error["code"] == "STATEMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(async_client: AsyncClient):
    r = await async_client.get("/api/v1/nothing-here")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_patch_statement(async_client: AsyncClient, sample_statement_payload):
    created = await _create(async_client, sample_statement_payload)
    r = await async_client.patch(f"{API}/{created['id']}", json={
        "amount": "2000",
        "status": "approved",
        "receiver": {"receiverFullname": "John A. Smith"},
    })
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["amount"] == "2000.00"
    assert data["status"] == "APPROVED"
    assert data["receiver"]["receiverFullname"] == "John A. Smith"
    assert data["receiver"]["id"] == created["receiver"]["id"]


@pytest.mark.asyncio
async def test_patch_empty_payload_rejected(async_client: AsyncClient, sample_statement_payload):
    created = await _create(async_client, sample_statement_payload)
    r = await async_client.patch(f"{API}/{created['id']}", json={})
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_patch_empty_sender_object_accepted(async_client: AsyncClient, sample_statement_payload):
    created = await _create(async_client, sample_statement_payload)
    r = await async_client.patch(f"{API}/{created['id']}", json={"sender": {}})
    assert r.status_code == 200
    assert r.json()["data"]["sender"] == created["sender"]


@pytest.mark.asyncio
async def test_patch_not_found(async_client: AsyncClient):
    r = await async_client.patch(f"{API}/987654", json={"status": "COMPLETED"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "STATEMENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_put_replaces_fields_and_keeps_status(async_client: AsyncClient, sample_statement_payload):
    created = await _create(async_client, sample_statement_payload)
    await async_client.patch(f"{API}/{created['id']}", json={"status": "COMPLETED"})
    replacement = {**sample_statement_payload, "amount": "10", "currency": "GBP"}
    r = await async_client.put(f"{API}/{created['id']}", json=replacement)
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["amount"] == "10.00"
    assert data["currency"] == "GBP"
    assert data["status"] == "COMPLETED"


@pytest.mark.asyncio
async def test_delete_statement(async_client: AsyncClient, sample_statement_payload):
    created = await _create(async_client, sample_statement_payload)
    r = await async_client.delete(f"{API}/{created['id']}")
    assert r.status_code == 200
    assert r.json()["data"] == {"id": created["id"], "deleted": True}
    r = await async_client.get(f"{API}/{created['id']}")
    assert r.status_code == 404
    r = await async_client.delete(f"{API}/{created['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_legacy_dashboard_paths(async_client: AsyncClient, sample_statement_payload):
    r = await async_client.post("/statements/create_statement", json=sample_statement_payload)
    assert r.status_code == 201, r.text
    statement_id = r.json()["data"]["id"]

    r = await async_client.get("/statements/get_statements")
    assert r.status_code == 200
    assert r.json()["meta"]["total"] == 1

    r = await async_client.get(f"/statements/get_statement/{statement_id}")
    assert r.status_code == 200
    assert r.json()["data"]["id"] == statement_id

    r = await async_client.patch(f"/statements/update_statement/{statement_id}",
                                 json={"currency": "eur"})
    assert r.status_code == 200
    assert r.json()["data"]["currency"] == "EUR"

    r = await async_client.delete(f"/statements/delete_statement/{statement_id}")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_analytics_endpoint(async_client: AsyncClient, sample_statement_payload):
    first = await _create(async_client, sample_statement_payload)
    await _create(async_client, {**sample_statement_payload, "amount": "500"})
    await async_client.patch(f"{API}/{first['id']}", json={"status": "COMPLETED"})

    r = await async_client.get(f"{API}/analytics")
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["summary"]["total_count"] == 2
    assert data["summary"]["total_amount"] == "2000.00"
    assert data["summary"]["completed_amount"] == "1500.00"
    assert data["status_groups"] == {"pending": 1, "approved": 1, "rejected": 0}
    assert sum(b["count"] for b in data["amount_histogram"]) == 2


@pytest.mark.asyncio
async def test_analytics_empty(async_client: AsyncClient):
    r = await async_client.get(f"{API}/analytics")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["summary"]["total_count"] == 0
    assert data["amount_histogram"] == []
    assert data["daily_series"] == []


@pytest.mark.asyncio
async def test_request_id_is_echoed(async_client: AsyncClient):
    r = await async_client.get(API, headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"
    assert r.headers["X-Response-Time"].endswith("ms")
