"""API routers package."""

from .metrics import router as metrics_router
from .statements import router as statements_router
from .system import router as system_router

__all__ = [
    "metrics_router",
    "statements_router",
    "system_router",
]
