import logging

import pytest


@pytest.fixture(autouse=True)
def debug_logging(caplog):
    """Binding traces are logged at debug level; capture them for every test."""
    caplog.set_level(logging.DEBUG, logger="argbind")
    yield caplog
