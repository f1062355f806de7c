import pytest

from osd_deploy.utils.logging_config import reset_logging


@pytest.fixture(autouse=True)
def clean_logging():
    """Each test configures logging against its own captured streams."""
    reset_logging()
    yield
    reset_logging()
