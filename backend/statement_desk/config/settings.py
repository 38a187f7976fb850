"""Application settings module.

Provides centralized configuration using environment variables with sane defaults.
The executor requisites printed on the detailed act and the document timezone
offset live here so the PDF layouts never hard-code deployment details.
"""
from __future__ import annotations

from functools import lru_cache
import os
from typing import Optional

from pydantic import BaseModel


class Settings(BaseModel):
    # Executor identity printed on the act of services rendered
    EXECUTOR_NAME: str = 'ООО "Система бизнес-автоматизации"'
    EXECUTOR_REQUISITES: str = "ИНН: 7701234567, КПП: 770101001"
    EXECUTOR_ADDRESS: str = "Адрес: г. Москва, ул. Ленина, д. 1"
    ACT_CITY: str = "г. Москва"

    # Dates on documents are rendered in this fixed UTC offset (Moscow by default)
    DOCUMENT_UTC_OFFSET_HOURS: float = 3.0

    # Explicit font pair tried before the platform candidates
    PDF_FONT_REGULAR: Optional[str] = None
    PDF_FONT_BOLD: Optional[str] = None

    # Observability toggles
    ENABLE_TRACING: bool = False
    PROMETHEUS_PORT: Optional[int] = None
    ENVIRONMENT: str = "development"

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from environment with type coercion and defaults."""
        def _get_float(name: str, default: float) -> float:
            raw = os.getenv(name)
            if raw is None:
                return default
            try:
                return float(raw)
            except ValueError:
                return default

        def _get_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        def _get_int(name: str) -> Optional[int]:
            raw = os.getenv(name)
            if not raw:
                return None
            try:
                return int(raw)
            except ValueError:
                return None

        defaults = cls()
        return cls(
            EXECUTOR_NAME=os.getenv("EXECUTOR_NAME", defaults.EXECUTOR_NAME),
            EXECUTOR_REQUISITES=os.getenv("EXECUTOR_REQUISITES", defaults.EXECUTOR_REQUISITES),
            EXECUTOR_ADDRESS=os.getenv("EXECUTOR_ADDRESS", defaults.EXECUTOR_ADDRESS),
            ACT_CITY=os.getenv("ACT_CITY", defaults.ACT_CITY),
            DOCUMENT_UTC_OFFSET_HOURS=_get_float("DOCUMENT_UTC_OFFSET_HOURS", 3.0),
            PDF_FONT_REGULAR=os.getenv("PDF_FONT_REGULAR") or None,
            PDF_FONT_BOLD=os.getenv("PDF_FONT_BOLD") or None,
            ENABLE_TRACING=_get_bool("ENABLE_TRACING", False),
            PROMETHEUS_PORT=_get_int("PROMETHEUS_PORT"),
            ENVIRONMENT=os.getenv("ENVIRONMENT", "development"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance (singleton pattern)."""
    return Settings.load()


__all__ = ["Settings", "get_settings"]
