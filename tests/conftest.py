"""Root conftest — shared test configuration."""

import os

import pytest

from verifyflow.config import get_settings

# Ensure tests never reach production hosts by accident
os.environ.setdefault("VERIFYFLOW_VALIDATIONS_BASE_URL", "https://validations.test/v1")
os.environ.setdefault("VERIFYFLOW_ACCOUNT_BASE_URL", "https://account.test/v1")


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
