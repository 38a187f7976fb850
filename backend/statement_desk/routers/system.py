"""System router providing health and readiness endpoints."""
from fastapi import APIRouter
import time

from statement_desk.config.database import async_database_health_check
from statement_desk.services.fonts import get_font_paths
from statement_desk.utils.api_shapes import success

router = APIRouter()

_start_time = time.time()


@router.get("/health", tags=["System"])  # liveness
async def health():
    return success({"ok": True})


@router.get("/readiness", tags=["System"])  # readiness: db connectivity + document fonts
async def readiness():
    db_health = await async_database_health_check()
    fonts = get_font_paths()
    return success({
        "database": db_health,
        "pdf_fonts": {"cyrillic": fonts.available, "regular": fonts.regular or None},
        "uptime_s": int(time.time() - _start_time),
    })
