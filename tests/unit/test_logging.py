"""
Unit tests for logging configuration.
"""

import json
import logging

import structlog
from structlog.contextvars import bound_contextvars
from yuzu_extractor.config import MonitoringConfig
from yuzu_extractor.observability import configure_logging


def test_json_file_logging(tmp_path):
    log_file = tmp_path / "logs" / "yuzu.log"
    root = logging.getLogger()
    previous_handlers, previous_level = root.handlers[:], root.level
    try:
        configure_logging(MonitoringConfig(log_level="debug", log_file=str(log_file)))

        with bound_contextvars(scope_url="https://reader.example.com/epub/"):
            structlog.get_logger("yuzu_extractor.test").info("Extracted content", styles=3)
        for handler in root.handlers:
            handler.flush()

        records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        extracted = [r for r in records if r["event"] == "Extracted content"]
        assert extracted[0]["styles"] == 3
        assert extracted[0]["scope_url"] == "https://reader.example.com/epub/"
        assert extracted[0]["level"] == "info"
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = previous_handlers
        root.setLevel(previous_level)
        structlog.reset_defaults()
