import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_installer_logger():
    # init_logging() detaches the logger from root; undo it so caplog keeps working
    yield
    logger = logging.getLogger("nvr_installer")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
