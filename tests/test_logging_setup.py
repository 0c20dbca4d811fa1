from __future__ import annotations

import logging
from collections.abc import Iterator

import allure
import pytest

from distributed_calculator.logging_setup import setup_logging

pytestmark = [
    allure.epic("Operations"),
    allure.feature("Logging"),
]


@pytest.fixture()
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.NOTSET)
    root.handlers = handlers
    root.setLevel(level)
    logging.captureWarnings(False)


def test_setup_logging_installs_single_stderr_handler(restore_root_logger: None) -> None:
    setup_logging("info")
    setup_logging("info")

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_debug_keeps_http_client_logs(restore_root_logger: None) -> None:
    setup_logging(logging.DEBUG)

    assert logging.getLogger("httpx").level == logging.DEBUG


def test_setup_logging_rejects_unknown_level(restore_root_logger: None) -> None:
    with pytest.raises(ValueError, match="Unknown log level"):
        setup_logging("chatty")
