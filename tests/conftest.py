from datetime import date

import pytest

from abundance_flow.clock import FixedClock
from abundance_flow.storage import KeyValueStore


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_abundance.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    return KeyValueStore(tmp_db)


@pytest.fixture
def clock():
    return FixedClock(date(2024, 3, 10))
