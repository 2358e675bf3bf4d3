import logging

import pytest

from gtreex import config as gt_config
from gtreex.logging import get_logger


def test_logger_respects_runtime_level(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("GTREEX_LOG_LEVEL", "DEBUG")
    gt_config.reset_runtime_config_cache()

    logger = get_logger("tests.logging")

    assert logger.level == logging.DEBUG
    assert logger.name == "gtreex.tests.logging"

    gt_config.reset_runtime_config_cache()
