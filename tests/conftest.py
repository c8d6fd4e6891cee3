"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: tests exercising the API or CLI surfaces")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for testing."""
    with patch("subprocess.run") as mock:
        yield mock


@pytest.fixture
def config_file(temp_dir, monkeypatch):
    """Point CLOUDVOL_CONFIG_PATH at a file in the temp dir and return a writer."""
    path = temp_dir / "cloudvol.conf"
    monkeypatch.setenv("CLOUDVOL_CONFIG_PATH", str(path))

    def write(content: str) -> Path:
        path.write_text(content, encoding="utf-8")
        return path

    return write
