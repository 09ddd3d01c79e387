import logging

import pytest

from generic_agent_lib.agent_core.logger import LIBRARY_LOGGER, get_logger, setup_logging


@pytest.fixture
def library_logger():
    logger = logging.getLogger(LIBRARY_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


def test_get_logger_names() -> None:
    assert get_logger().name == "generic_agent_lib"
    assert get_logger("tools").name == "generic_agent_lib.tools"
    assert get_logger("generic_agent_lib.agent_core.sse").name == "generic_agent_lib.agent_core.sse"


def test_setup_logging_adds_one_handler(library_logger) -> None:
    setup_logging("debug")
    setup_logging(logging.WARNING)

    stream_handlers = [h for h in library_logger.handlers if not isinstance(h, logging.NullHandler)]
    assert len(stream_handlers) == 1
    assert library_logger.level == logging.WARNING
