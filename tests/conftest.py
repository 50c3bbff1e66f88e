"""
pytest configuration for request_pipeline tests.

Adds src directory to Python path for imports and sets up test environment.
"""

import sys
import tempfile
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


def pytest_configure(config):
    """Install a deterministic configuration before any test runs."""
    from request_pipeline.config import PipelineConfig, set_config

    set_config(
        PipelineConfig(
            base_url="https://api.example.com",
            worker_count=4,
            request_timeout_seconds=5,
            temp_dir=Path(tempfile.gettempdir()),
        )
    )


@pytest.fixture
def test_config(tmp_path):
    """Configuration whose temporary files land in the test's tmp_path."""
    from request_pipeline.config import PipelineConfig

    temp_dir = tmp_path / "transport-tmp"
    temp_dir.mkdir()
    return PipelineConfig(
        base_url="https://api.example.com",
        worker_count=4,
        request_timeout_seconds=5,
        download_chunk_size=4,
        temp_dir=temp_dir,
    )
