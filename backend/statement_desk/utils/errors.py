"""Centralized error response helpers and exception utilities."""
from __future__ import annotations
from fastapi import HTTPException
from typing import Any, Dict
import time

ERROR_CODES = {
    "validation": "VALIDATION_ERROR",
    "not_found": "NOT_FOUND",
    # Domain specific specialisations
    "statement_not_found": "STATEMENT_NOT_FOUND",
    "receipt_not_available": "RECEIPT_NOT_AVAILABLE",
    "pdf_failed": "PDF_GENERATION_FAILED",
    "db": "DB_ERROR",
    "internal": "INTERNAL_SERVER_ERROR",
}


def error_payload(code: str, message: str, details: Any | None = None, path: str | None = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "status": "error",
        "error": {
            "code": code,
            "message": message,
        },
        "timestamp": time.time(),
    }
    if details is not None:
        payload["error"]["details"] = details
    if path:
        payload["path"] = path
    return payload


def http_error(status_code: int, code: str, message: str) -> HTTPException:
    """Build an HTTPException carrying a standardized code for the global handler."""
    exc = HTTPException(status_code=status_code, detail=message)
    setattr(exc, "code", code)
    return exc


class DomainError(Exception):
    """Base domain error storing standardized fields."""

    def __init__(self, code: str, message: str, details: Any | None = None):  # noqa: D401
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details


class PdfGenerationError(DomainError):
    """Writing a laid-out document into its byte buffer failed."""

    def __init__(self, message: str = "PDF generation failed", details: Any | None = None):
        super().__init__(ERROR_CODES["pdf_failed"], message, details=details)


class ReceiptNotAvailable(DomainError):
    def __init__(self, status: str):
        super().__init__(
            ERROR_CODES["receipt_not_available"],
            "Квитанцию можно распечатать только после завершения перевода",
            details={"status": status},
        )


__all__ = [
    "ERROR_CODES",
    "error_payload",
    "http_error",
    "DomainError",
    "PdfGenerationError",
    "ReceiptNotAvailable",
]
