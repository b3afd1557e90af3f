"""Tests for logging setup."""

from __future__ import annotations

import json
import logging

from incontext.utilities import logger
from incontext.utilities.logger import get_logger, setup_logging


class TestSetupLogging:
    def test_levels(self) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.WARNING
        setup_logging(debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_replaces_own_handler_only(self) -> None:
        root = logging.getLogger()
        before = len(root.handlers)
        setup_logging()
        setup_logging()
        assert len(root.handlers) == before + 1

    def test_json_renders_stdlib_records(self) -> None:
        setup_logging(json_output=True)
        handler = logger._handler
        assert handler is not None
        record = logging.LogRecord(
            "incontext.references.syntax", logging.WARNING, __file__, 1,
            "Failed to parse pointer %r", ("@m/a:L0",), None,
        )
        payload = json.loads(handler.format(record))
        assert payload["event"] == "Failed to parse pointer '@m/a:L0'"
        assert payload["level"] == "warning"
        assert payload["logger"] == "incontext.references.syntax"

    def test_get_logger(self) -> None:
        setup_logging()
        log = get_logger("incontext.test")
        log.debug("not emitted")
