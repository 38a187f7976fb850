"""Models package marker.

Allows relative imports from sibling packages (e.g. services -> models).
Exposes Base and the read-only record types for simplified imports.
"""
from .database import Base  # noqa: F401
from .records import StatementRecord, SenderInfo, ReceiverInfo  # noqa: F401
