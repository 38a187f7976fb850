import json
import logging

import pytest

from statement_desk.config.logging import JsonFormatter, bind_context

pytestmark = [pytest.mark.unit]


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("pdf_service", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_keeps_cyrillic_and_context():
    line = JsonFormatter().format(_record("Квитанция готова", statement_id=5, document="receipt"))
    assert "Квитанция готова" in line
    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "pdf_service"
    assert payload["statement_id"] == 5
    assert payload["document"] == "receipt"


def test_bind_context_adds_extra_fields():
    logger = logging.getLogger("statement_desk.test")
    adapter = bind_context(logger, statement_id=3)
    assert isinstance(adapter, logging.LoggerAdapter)
    assert adapter.extra == {"statement_id": 3}
    assert bind_context(logger) is logger
