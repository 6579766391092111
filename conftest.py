import os
import shutil
from pathlib import Path

import pytest

from glutton.storage import Storage

TEST_DATA_DIR = Path("data-tests")

# backend.app builds a default app at import time; keep it out of ./data
os.environ.setdefault("DATA_DIR", str(TEST_DATA_DIR.resolve()))


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def storage(tmp_path) -> Storage:
    """A fresh Storage rooted in the test's tmp_path."""
    return Storage(tmp_path)
