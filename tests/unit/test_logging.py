from __future__ import annotations

import structlog

from fillforms import logger as package_logger
from fillforms.logging import bind_document_context, configure_logging, get_logger
from fillforms.settings import Settings


def test_stdlib_logger_is_configured(capsys) -> None:
    configure_logging(settings=Settings(LOG_JSON=False, LOG_LEVEL="INFO"), force=True)
    logger = get_logger("tests")
    logger.info("hello")

    captured = capsys.readouterr()
    assert "hello" in captured.err.lower()


def test_package_logger_created_on_import() -> None:
    assert callable(getattr(package_logger, "info", None))


def test_bind_document_context_binds_and_unbinds() -> None:
    structlog.contextvars.clear_contextvars()
    bind_document_context(session_id="s1", form_id="f1")
    assert structlog.contextvars.get_contextvars() == {"session_id": "s1", "form_id": "f1"}

    bind_document_context(form_id=None)
    assert structlog.contextvars.get_contextvars() == {"session_id": "s1"}
    structlog.contextvars.clear_contextvars()
