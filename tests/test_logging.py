import json
import logging
from pathlib import Path

import pytest

from specgate.foundation.logging_utils import log_operation, setup_logger


def test_setup_logger_writes_utf8_file(tmp_path: Path):
    log_path = tmp_path / "nested" / "gate.log"

    logger = setup_logger("specgate.test_logging", level="WARNING", log_path=str(log_path))
    logger.info("Decision for composant → approuvé")
    for handler in logger.handlers:
        handler.flush()

    content = log_path.read_text(encoding="utf-8")
    assert "composant → approuvé" in content
    assert " | INFO | " in content


def test_setup_logger_rejects_unknown_level():
    with pytest.raises(ValueError, match=r"Invalid log level"):
        setup_logger("specgate.test_logging_bad", level="CHATTY")


def test_log_operation_emits_compact_sorted_json(caplog):
    logger = logging.getLogger("specgate.test_log_operation")
    caplog.set_level(logging.INFO, logger=logger.name)

    event = log_operation(
        logger,
        build_id="build_00112233aabbccdd",
        step="PlanBuilder",
        status="created",
        duration_ms=12.7,
        metadata={"steps": 8},
    )

    (record,) = caplog.records
    assert json.loads(record.getMessage()) == event
    assert record.getMessage().startswith('{"buildId":"build_00112233aabbccdd","durationMs":12,')
    assert event["metadata"] == {"steps": 8}
    assert "errorMessage" not in event
    assert event["timestamp"].endswith("Z")
