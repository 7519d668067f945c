import logging

import pytest


@pytest.fixture(autouse=True)
def reset_log_levels():
    yield
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("wsrelay."):
            logging.getLogger(name).setLevel(logging.WARN)
    logging.getLogger("wsrelay.trace").setLevel(logging.INFO)
