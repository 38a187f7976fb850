"""Statement router: CRUD, analytics and printable documents.

Mounted twice by main.py: under /api/v1/statements and under the legacy
/statements prefix the dashboard frontend calls (create_statement,
get_statements, ... aliases live on the same router).

 - Domain exceptions from the service layer become HTTPException with a `code`
 - Create/update/delete and PDF generation emit OpenTelemetry counters
 - A receipt can only be printed for a COMPLETED transfer (403 otherwise)
"""
from decimal import Decimal
from typing import Any, Dict, Optional
import logging
import time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from statement_desk.config.database import get_async_db_dependency
from statement_desk.config.logging import bind_context
from statement_desk.config.observability import (
    pdf_generated_counter,
    performance_monitor,
    statement_create_counter,
    statement_delete_counter,
    statement_update_counter,
    trace_operation,
)
from statement_desk.models.database import Currency, StatementStatus
from statement_desk.models.records import StatementRecord
from statement_desk.services.analytics_service import build_analytics
from statement_desk.services.pdf_service import render_pdf
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
from statement_desk.utils.api_shapes import pdf_response, success
from statement_desk.utils.errors import PdfGenerationError, ReceiptNotAvailable, http_error

logger = logging.getLogger(__name__)

router = APIRouter()

# Pydantic schemas


def _rename_keys(values: Dict[str, Any], key_map: Dict[str, str]) -> Dict[str, Any]:
    """Copy camelCase keys onto their snake_case names; strip string values."""
    for src_key, dest_key in key_map.items():
        if src_key in values and dest_key not in values:
            values[dest_key] = values[src_key]
    for key, value in list(values.items()):
        if isinstance(value, str):
            values[key] = value.strip()
    return values


class SenderIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    sender_fullname: str = Field(min_length=1, max_length=255)
    sender_passport: str = Field(min_length=1, max_length=64)

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        if not isinstance(values, dict):
            return values
        return _rename_keys(dict(values), {
            'senderFullname': 'sender_fullname',
            'senderPassport': 'sender_passport',
        })


class ReceiverIn(BaseModel):
    model_config = ConfigDict(extra='ignore')

    receiver_fullname: str = Field(min_length=1, max_length=255)
    receiver_account_number: str = Field(min_length=1, max_length=64)
    receiver_swift: str = Field(min_length=1, max_length=11)

    @model_validator(mode="before")
    @classmethod
    def normalize_input(cls, values):  # type: ignore
        if not isinstance(values, dict):
            return values
        return _rename_keys(dict(values), {
            'receiverFullname': 'receiver_fullname',
            'receiverAccountNumber': 'receiver_account_number',
            'receiverSwift': 'receiver_swift',
        })


class SenderPatch(SenderIn):
    sender_fullname: Optional[str] = Field(default=None, max_length=255)
    sender_passport: Optional[str] = Field(default=None, max_length=64)


class ReceiverPatch(ReceiverIn):
    receiver_fullname: Optional[str] = Field(default=None, max_length=255)
    receiver_account_number: Optional[str] = Field(default=None, max_length=64)
    receiver_swift: Optional[str] = Field(default=None, max_length=11)


def _coerce_amount(value):
    """Accept numeric strings ("1500.00") as sent by the frontend form."""
    if isinstance(value, str):
        if value.strip() == '':
            return None
        return value.strip().replace(',', '.')
    return value


class StatementCreate(BaseModel):
    """Create / full-replace payload: every field required."""
    model_config = ConfigDict(extra='ignore')

    sender: SenderIn
    receiver: ReceiverIn
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)
    currency: Currency

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, value):  # type: ignore
        return _coerce_amount(value)

    @field_validator('currency', mode='before')
    @classmethod
    def upper_currency(cls, value):  # type: ignore
        return value.strip().upper() if isinstance(value, str) else value


class StatementUpdate(BaseModel):
    """Partial update: any subset of the create fields plus status."""
    model_config = ConfigDict(extra='ignore')

    sender: Optional[SenderPatch] = None
    receiver: Optional[ReceiverPatch] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=18, decimal_places=2)
    currency: Optional[Currency] = None
    status: Optional[StatementStatus] = None

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, value):  # type: ignore
        return _coerce_amount(value)

    @field_validator('currency', 'status', mode='before')
    @classmethod
    def upper_enum(cls, value):  # type: ignore
        if isinstance(value, str):
            return value.strip().upper() or None
        return value


def _payload(model: BaseModel) -> Dict[str, Any]:
    # Enums become their values and Decimal a string; the service re-parses amounts
    return model.model_dump(mode="json", exclude_none=True)


def _not_found(exc: StatementNotFound):
    return http_error(status.HTTP_404_NOT_FOUND, StatementNotFound.code, str(exc))


# Routes


@router.post('/', status_code=status.HTTP_201_CREATED)
@router.post('', status_code=status.HTTP_201_CREATED)
@router.post('/create_statement', status_code=status.HTTP_201_CREATED, include_in_schema=False)
async def create_statement(
    payload: StatementCreate,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    with trace_operation("statement_create", currency=payload.currency.value):
        record = await create_statement_service(db, _payload(payload))
    statement_create_counter.add(1, {"currency": record.currency})
    return success(record.to_api())


@router.get('/')
@router.get('')
@router.get('/get_statements', include_in_schema=False)
async def list_statements(
    status_filter: Optional[StatementStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_async_db_dependency),
):
    records = await list_statements_service(db, status_filter.value if status_filter else None)
    return success([r.to_api() for r in records], total=len(records))


@router.get('/analytics')
async def statements_analytics(
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Aggregates behind the analytics dashboard (summary, distributions, series)."""
    with trace_operation("statement_analytics"):
        records = await list_statements_service(db)
        data = build_analytics(records)
    return success(data, total=len(records))


@router.get('/{statement_id}')
@router.get('/get_statement/{statement_id}', include_in_schema=False)
async def get_statement(
    statement_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        record = await get_statement_service(db, statement_id)
    except StatementNotFound as exc:
        raise _not_found(exc) from exc
    return success(record.to_api())


@router.patch('/{statement_id}')
@router.patch('/update_statement/{statement_id}', include_in_schema=False)
async def update_statement(
    statement_id: int,
    payload: StatementUpdate,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        with trace_operation("statement_update", statement_id=statement_id):
            record = await update_statement_service(db, statement_id, _payload(payload))
    except StatementNotFound as exc:
        raise _not_found(exc) from exc
    except ValidationError as exc:
        raise http_error(422, ValidationError.code, str(exc)) from exc
    statement_update_counter.add(1, {"status": record.status})
    return success(record.to_api())


@router.put('/{statement_id}')
async def replace_statement(
    statement_id: int,
    payload: StatementCreate,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        with trace_operation("statement_replace", statement_id=statement_id):
            record = await replace_statement_service(db, statement_id, _payload(payload))
    except StatementNotFound as exc:
        raise _not_found(exc) from exc
    statement_update_counter.add(1, {"status": record.status})
    return success(record.to_api())


@router.delete('/{statement_id}')
@router.delete('/delete_statement/{statement_id}', include_in_schema=False)
async def delete_statement(
    statement_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    try:
        await delete_statement_service(db, statement_id)
    except StatementNotFound as exc:
        raise _not_found(exc) from exc
    statement_delete_counter.add(1)
    return success({"id": statement_id, "deleted": True})


# Documents


async def _document(kind: str, record: StatementRecord):
    log = bind_context(logger, statement_id=record.id, document=kind)
    started = time.perf_counter()
    try:
        with trace_operation("pdf_generate", document=kind, statement_id=record.id):
            content, filename = await render_pdf(kind, record)
    except PdfGenerationError as exc:
        log.error("PDF generation failed: %s", exc.message)
        raise http_error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc.code, exc.message) from exc
    performance_monitor.record_pdf_render(kind, (time.perf_counter() - started) * 1000, len(content))
    pdf_generated_counter.add(1, {"document": kind})
    log.info("Served %s", filename)
    return pdf_response(content, filename)


async def _record_or_404(db: AsyncSession, statement_id: int) -> StatementRecord:
    try:
        return await get_statement_service(db, statement_id)
    except StatementNotFound as exc:
        raise _not_found(exc) from exc


@router.get('/{statement_id}/print')
async def print_statement(
    statement_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Transfer application PDF."""
    return await _document("statement", await _record_or_404(db, statement_id))


@router.get('/{statement_id}/receipt')
async def print_receipt(
    statement_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Receipt PDF; only issued once the transfer is COMPLETED."""
    record = await _record_or_404(db, statement_id)
    if record.status != StatementStatus.COMPLETED.value:
        refusal = ReceiptNotAvailable(record.status)
        raise http_error(status.HTTP_403_FORBIDDEN, refusal.code, refusal.message)
    return await _document("receipt", record)


@router.get('/{statement_id}/report')
async def print_report(
    statement_id: int,
    db: AsyncSession = Depends(get_async_db_dependency),
):
    """Detailed act of services rendered PDF."""
    return await _document("report", await _record_or_404(db, statement_id))


__all__ = ["router", "StatementCreate", "StatementUpdate"]
