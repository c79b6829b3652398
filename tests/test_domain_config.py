import logging
from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from drainq.domain.config import DrainLoopConfig


def test_defaults():
    config = DrainLoopConfig()
    assert config.qmkey is None
    assert config.max_execution_time is None
    assert config.max_queue_items is None
    assert config.started_at is None


def test_from_mapping_reads_known_fields():
    config = DrainLoopConfig.from_mapping(
        {"qmkey": "abc123", "max_execution_time": "15", "max_queue_items": 3}
    )
    assert config.qmkey == "abc123"
    assert config.max_execution_time == 15
    assert config.max_queue_items == 3


def test_from_mapping_ignores_unknown_keys(caplog):
    with caplog.at_level(logging.DEBUG, logger="drainq.domain.config"):
        config = DrainLoopConfig.from_mapping({"qmkey": "k", "handled_items": 7})
    assert config == DrainLoopConfig(qmkey="k")
    assert "handled_items" in caplog.text


def test_naive_started_at_is_utc():
    config = DrainLoopConfig(started_at=datetime(2024, 1, 1, 12, 0))
    assert config.started_at == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def test_negative_budgets_are_accepted():
    config = DrainLoopConfig.from_mapping(
        {"max_execution_time": "-1", "max_queue_items": -5}
    )
    assert config.max_execution_time == -1
    assert config.max_queue_items == -5


def test_config_is_frozen():
    config = DrainLoopConfig()
    with pytest.raises(ValidationError):
        config.qmkey = "x"
