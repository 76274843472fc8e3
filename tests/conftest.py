# tests/conftest.py
from unittest.mock import MagicMock

import pytest

from installer.config_models import AppSettings


@pytest.fixture
def app_settings():
    """Settings for a three-member replica set with credentials."""
    return AppSettings(
        mongo={"replica_set_name": "rs0", "replica_set_key": "s3cr3tkey"},
        node={"instance_count": 3},
        admin={"username": "admin", "password": "secret"},
        service={"readiness_timeout": 30, "readiness_interval": 1, "stop_cooldown": 15},
    )


@pytest.fixture
def mock_logger():
    return MagicMock()
