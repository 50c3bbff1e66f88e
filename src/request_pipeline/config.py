"""Request pipeline configuration from environment variables."""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from request_pipeline.errors import ConfigurationError

DEFAULT_BASE_URL = "https://jsonplaceholder.typicode.com"
KEY_CASINGS = ("snake_case", "camel_case")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}", cause=e)


@dataclass
class PipelineConfig:
    """Dispatcher and transport configuration.

    Load from environment using PipelineConfig.from_env().
    All timing values in seconds.
    """

    # Requests
    base_url: str = DEFAULT_BASE_URL
    request_timeout_seconds: int = 60

    # Worker pool
    worker_count: int = 4

    # Downloads
    download_chunk_size: int = 64 * 1024
    temp_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    # Serialization
    key_casing: str = "snake_case"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigurationError: If any value is out of range
        """
        if not self.base_url:
            raise ConfigurationError("base_url must not be empty")
        if self.worker_count < 1:
            raise ConfigurationError(
                f"worker_count must be at least 1, got {self.worker_count}"
            )
        if self.request_timeout_seconds <= 0:
            raise ConfigurationError(
                f"request_timeout_seconds must be positive, got {self.request_timeout_seconds}"
            )
        if self.download_chunk_size <= 0:
            raise ConfigurationError(
                f"download_chunk_size must be positive, got {self.download_chunk_size}"
            )
        if self.key_casing not in KEY_CASINGS:
            raise ConfigurationError(
                f"key_casing must be one of {KEY_CASINGS}, got {self.key_casing!r}"
            )

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Load configuration from environment variables.

        Optional environment variables (with defaults):
            REQUEST_PIPELINE_BASE_URL: https://jsonplaceholder.typicode.com (default)
            REQUEST_PIPELINE_TIMEOUT: 60 (default, seconds)
            REQUEST_PIPELINE_WORKERS: 4 (default)
            REQUEST_PIPELINE_CHUNK_SIZE: 65536 (default, bytes)
            REQUEST_PIPELINE_TEMP_DIR: system temp directory (default)
            REQUEST_PIPELINE_KEY_CASING: snake_case (default) or camel_case

        Raises:
            ConfigurationError: If a value cannot be parsed or is out of range
        """
        temp_dir = os.getenv("REQUEST_PIPELINE_TEMP_DIR")

        return cls(
            base_url=os.getenv("REQUEST_PIPELINE_BASE_URL", DEFAULT_BASE_URL),
            request_timeout_seconds=_env_int("REQUEST_PIPELINE_TIMEOUT", 60),
            worker_count=_env_int("REQUEST_PIPELINE_WORKERS", 4),
            download_chunk_size=_env_int("REQUEST_PIPELINE_CHUNK_SIZE", 64 * 1024),
            temp_dir=Path(temp_dir) if temp_dir else Path(tempfile.gettempdir()),
            key_casing=os.getenv("REQUEST_PIPELINE_KEY_CASING", "snake_case")
            .strip()
            .lower(),
        )


_default_config = None


def get_config() -> PipelineConfig:
    """Return the process-wide configuration, loading it from the environment once."""
    global _default_config
    if _default_config is None:
        _default_config = PipelineConfig.from_env()
    return _default_config


def set_config(config: PipelineConfig) -> None:
    """Replace the process-wide configuration (used by tests and embedding apps)."""
    global _default_config
    _default_config = config
