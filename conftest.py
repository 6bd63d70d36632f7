import shutil
from pathlib import Path

import pytest

TEST_DATA_DIR = Path("data-tests")

_ENV_VARS = ("OPENAI_API_KEY", "LLM_PROVIDER_URL", "LLM_MODEL", "DATA_DIR", "VIOLET_USERS")


@pytest.fixture(autouse=True)
def clean_test_env(monkeypatch):
    """Wipe data-tests/ and drop backend env overrides before every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    TEST_DATA_DIR.mkdir()
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def data_dir() -> Path:
    return TEST_DATA_DIR
