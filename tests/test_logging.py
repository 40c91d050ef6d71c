from __future__ import annotations

import logging

import orjson
import pytest

from procurerelay.core.logging import (
    ContextualLogger,
    JSONFormatter,
    get_contextual_logger,
    get_logger,
    setup_logging,
)
from procurerelay.core.models import DataKind


@pytest.fixture()
def reset_logger():
    yield
    logger = logging.getLogger("procurerelay")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


def test_json_formatter_includes_context_fields():
    record = logging.makeLogRecord(
        {
            "name": "procurerelay.relay",
            "levelname": "INFO",
            "levelno": logging.INFO,
            "msg": "Contract relay finished",
            "kind": "contract_status",
            "delivered": True,
            "duration_ms": 42,
        }
    )

    data = orjson.loads(JSONFormatter().format(record))

    assert data["message"] == "Contract relay finished"
    assert data["level"] == "INFO"
    assert data["kind"] == "contract_status"
    assert data["delivered"] is True
    assert data["duration_ms"] == 42
    assert "status_code" not in data


def test_contextual_logger_adds_kind():
    log = get_contextual_logger("relay", kind=DataKind.BID_NOTICE)

    _, kwargs = log.process("message", {"extra": {"delivered": False}})

    assert kwargs["extra"] == {"delivered": False, "kind": "bid_notice"}
    assert log.logger.name == "procurerelay.relay"


def test_contextual_logger_without_kind():
    log = ContextualLogger(get_logger())

    _, kwargs = log.process("message", {})

    assert kwargs["extra"] == {}
    assert log.with_context(kind=DataKind.CONTRACT).kind == "contract_status"


def test_setup_logging_writes_json_file(tmp_path, reset_logger):
    log_file = tmp_path / "logs" / "relay.log"
    setup_logging(level="DEBUG", log_file=log_file, rich_console=False)

    get_contextual_logger("relay", kind=DataKind.PRE_NOTICE).info("Sending", extra={"source": "live"})
    for handler in logging.getLogger("procurerelay").handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    entry = orjson.loads(lines[-1])
    assert entry["message"] == "Sending"
    assert entry["kind"] == "pre_notice"
    assert entry["source"] == "live"
    assert entry["logger"] == "procurerelay.relay"


def test_setup_logging_replaces_handlers(reset_logger):
    setup_logging(level="WARNING", rich_console=False)
    logger = setup_logging(level="INFO", rich_console=True)

    assert len(logger.handlers) == 1
    assert logger.level == logging.INFO
