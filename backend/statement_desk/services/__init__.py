"""Service layer package.

Ensures Python treats this directory as a package so absolute imports like
`from statement_desk.services.pdf_service import render_pdf` resolve when
tests add `backend` to sys.path.
"""

__all__ = [
    "analytics_service",
    "fonts",
    "pdf_layout",
    "pdf_service",
    "statement_service",
]
