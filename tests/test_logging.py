"""
Tests for structured operation logging and payload sanitization.
"""

import logging

import pytest

from sigil_engine.core.schema import SourceType
from sigil_engine.core.store import SigilStore
from sigil_engine.util.logging import StructuredLogger, logger, sanitize_payload

from conftest import build_sigil, unit


def test_log_operation_format(caplog):
    caplog.set_level(logging.INFO, logger="sigil_engine")

    logger.log_operation("sigil.append", "success", {"sigil_id": "sigil_1"})

    assert "Operation: sigil.append, Status: success, Details: {'sigil_id': 'sigil_1'}" in caplog.text


@pytest.mark.parametrize("status,level", [
    ("success", logging.INFO),
    ("fallback", logging.WARNING),
    ("evicted", logging.WARNING),
    ("failed", logging.ERROR),
])
def test_status_maps_to_level(caplog, status, level):
    caplog.set_level(logging.INFO, logger="sigil_engine")

    logger.log_operation("probe", status)

    assert caplog.records[-1].levelno == level


def test_encoding_fallback_truncates_text(caplog):
    caplog.set_level(logging.INFO, logger="sigil_engine")
    long_text = "ocean " * 40

    logger.log_encoding_fallback("zero magnitude", long_text, SourceType.DREAM.value)

    message = caplog.records[-1].getMessage()
    assert "encoding.fallback" in message
    assert long_text not in message
    assert "..." in message


def test_eviction_is_logged_as_warning(caplog):
    caplog.set_level(logging.INFO, logger="sigil_engine")
    store = SigilStore(retention=1)
    store.append(build_sigil("old", unit(1.0), minutes=0))
    store.append(build_sigil("new", unit(1.0), minutes=1))

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any("sigil.evict" in r.getMessage() and "old" in r.getMessage() for r in warnings)


def test_logger_does_not_duplicate_handlers():
    StructuredLogger("sigil_engine")
    StructuredLogger("sigil_engine")

    assert len(logging.getLogger("sigil_engine").handlers) == 1


def test_sanitize_payload():
    payload = {
        "text": "my private dream",
        "password": "hunter2",
        "sigil_id": "sigil_1",
        "notes": ["x" * 80],
        "count": 3
    }

    sanitized = sanitize_payload(payload)

    assert sanitized["text"] == "[REDACTED]"
    assert sanitized["password"] == "[REDACTED]"
    assert sanitized["sigil_id"] == "sigil_1"
    assert sanitized["notes"] == ["x" * 50 + "..."]
    assert sanitized["count"] == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
