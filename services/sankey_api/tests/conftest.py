import sys

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _reset_logger():
    # The CLI swaps loguru sinks; give every test the default stderr sink back
    yield
    logger.remove()
    logger.add(sys.stderr)
