import os
import tempfile
import pytest
import sqlite3
from datetime import datetime, timezone
from app.cache import db as cache_db
from app.core import config
from app.schemas import Quote

@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment with a temporary database and no mock quotes"""
    # Store original values
    original_db_path = cache_db.DATABASE_PATH
    original_use_mock = config.settings.USE_MOCK
    original_tick = config.settings.TICK_INTERVAL_SECONDS

    # Create temporary database for tests
    temp_db = tempfile.NamedTemporaryFile(suffix='.sqlite', delete=False)
    temp_db_path = temp_db.name
    temp_db.close()

    cache_db.DATABASE_PATH = temp_db_path
    config.settings.USE_MOCK = False  # Allow patching the fetcher
    config.settings.TICK_INTERVAL_SECONDS = 0.01

    # Initialize test database
    cache_db.init_db()

    yield

    # Restore original values
    cache_db.DATABASE_PATH = original_db_path
    config.settings.USE_MOCK = original_use_mock
    config.settings.TICK_INTERVAL_SECONDS = original_tick

    # Cleanup temporary database - close all connections first (Windows fix)
    try:
        conn = sqlite3.connect(temp_db_path)
        conn.close()

        if os.path.exists(temp_db_path):
            os.unlink(temp_db_path)
    except OSError:
        # If cleanup fails, it's not critical for tests
        pass

@pytest.fixture
def t0():
    return datetime(2025, 10, 25, 12, 0, 0, tzinfo=timezone.utc)

@pytest.fixture
def daily_quote():
    return Quote(text="Well begun is half done.", author="Aristotle")

@pytest.fixture
def random_quote():
    return Quote(text="What we think, we become.", author="Buddha")
