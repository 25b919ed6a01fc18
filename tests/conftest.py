"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from microtasker.config import Config, ConfigModel  # noqa: E402
from microtasker.webapp.server.auth import AuthService  # noqa: E402
from microtasker.webapp.server.database import Database, reset_db, set_db  # noqa: E402
from microtasker.services.task_service import TaskService  # noqa: E402


TEST_SECRET = "test-secret-key-with-enough-length-for-hs256-signing"


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at a temporary data directory"""
    config = ConfigModel(
        data_dir=str(tmp_path),
        jwt_secret=TEST_SECRET,
        bcrypt_rounds=4,
    )
    Config.set(config)

    yield config

    Config.set(None)


@pytest.fixture
def test_db(test_config):
    """Temporary database installed as the global instance"""
    db = Database(test_config.database_path)
    set_db(db)

    yield db

    reset_db()


@pytest.fixture
def auth_service(test_db, test_config):
    return AuthService(test_db, test_config)


@pytest.fixture
def task_service(test_db):
    return TaskService(test_db)


@pytest.fixture
def user(auth_service):
    """A registered user"""
    return auth_service.register_user("user@example.com", "password123", name="Test User")
