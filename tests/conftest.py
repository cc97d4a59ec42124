"""
Pytest configuration and shared fixtures for Equipment Health Predictor tests
"""

import os
import sys
from pathlib import Path

import pytest

# Add project root and src to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

os.environ.setdefault('TF_CPP_MIN_LOG_LEVEL', '3')


@pytest.fixture(scope="session")
def project_root_path():
    """Provide project root path for tests"""
    return project_root


@pytest.fixture
def artifact_dir(tmp_path):
    """Empty model artifact directory"""
    model_dir = tmp_path / "model"
    model_dir.mkdir()
    return model_dir


@pytest.fixture
def midpoint_window():
    """Eleven ascending readings sitting exactly on the normalization midpoints"""
    from tests.helpers import make_window
    return make_window()


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep host configuration out of the tests"""
    for name in ('SUPABASE_URL', 'SUPABASE_KEY', 'MODEL_DIR', 'SCHEDULE_INTERVAL_SECONDS',
                 'LOG_LEVEL', 'DEVICE_ID', 'EQUIPMENT_HEALTH_CONFIG', 'ENVIRONMENT'):
        monkeypatch.delenv(name, raising=False)
