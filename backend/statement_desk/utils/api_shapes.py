"""Shared API shape helpers.

  - success(): standard success envelope
  - pdf_response(): binary PDF download with attachment filename
"""
from __future__ import annotations
from typing import Any
from fastapi.responses import Response

PDF_MEDIA_TYPE = "application/pdf"


def success(data: Any, **meta) -> dict:
    import time as _t
    return {"status": "success", "data": data, "meta": meta or None, "timestamp": _t.time()}


def pdf_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
