import pytest  # noqa: F401
from statement_desk.utils.errors import (
    ERROR_CODES,
    PdfGenerationError,
    ReceiptNotAvailable,
    error_payload,
    http_error,
)


def test_error_payload_basic():
    p = error_payload(ERROR_CODES["validation"], "Invalid data", details={
                      "field": "amount"}, path="/api/v1/statements")
    assert p["status"] == "error"
    assert p["error"]["code"] == "VALIDATION_ERROR"
    assert p["error"]["details"] == {"field": "amount"}
    assert p["path"] == "/api/v1/statements"


def test_error_payload_omits_empty_details_and_path():
    p = error_payload(ERROR_CODES["not_found"], "Missing")
    assert "details" not in p["error"]
    assert "path" not in p


def test_http_error_carries_code():
    exc = http_error(404, ERROR_CODES["statement_not_found"], "Statement 7 not found")
    assert exc.status_code == 404
    assert exc.detail == "Statement 7 not found"
    assert exc.code == "STATEMENT_NOT_FOUND"


def test_receipt_not_available_reports_status():
    exc = ReceiptNotAvailable("PENDING")
    assert exc.code == ERROR_CODES["receipt_not_available"]
    assert exc.details == {"status": "PENDING"}
    assert "завершения перевода" in exc.message


def test_pdf_generation_error_defaults():
    exc = PdfGenerationError(details={"document": "receipt_1.pdf"})
    assert exc.code == "PDF_GENERATION_FAILED"
    assert exc.message == "PDF generation failed"
    assert str(exc) == "PDF generation failed"
