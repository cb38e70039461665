"""Configuration management for the Wrike Airdrop snap-in."""

import os
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..exceptions import ConfigurationError

DEFAULT_WRIKE_API_BASE_URL = "https://www.wrike.com/api/v4"
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_WORKER_TIMEOUT = 600


def setup_logging(level: str = "INFO") -> None:
    """Set up logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_environment(env_file: Optional[str] = None) -> None:
    """Load environment variables from .env file.

    Args:
        env_file: Path to .env file. If None, looks for .env in current directory.
    """
    if env_file:
        env_path = Path(env_file)
    else:
        env_path = Path('.env')

    if env_path.exists():
        load_dotenv(env_path)
        logging.info(f"Loaded environment from {env_path}")
    else:
        logging.warning(f"No .env file found at {env_path}")


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(key)
    if not value:
        raise ValueError(f"Required environment variable {key} is not set")
    return value


def get_optional_env(key: str, default: str = "") -> str:
    """Get an optional environment variable."""
    return os.getenv(key, default)


def get_int_env(key: str, default: int) -> int:
    """Get an integer environment variable, falling back to default when unset."""
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable {key} must be an integer, got {raw!r}")


def get_wrike_base_url() -> str:
    return get_optional_env("WRIKE_API_BASE_URL", DEFAULT_WRIKE_API_BASE_URL)


def get_request_timeout() -> int:
    return get_int_env("WRIKE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT)


def get_worker_timeout() -> int:
    return get_int_env("WORKER_TIMEOUT_SECONDS", DEFAULT_WORKER_TIMEOUT)


def mask_secret(value: Optional[str]) -> str:
    """Render a secret for logs without revealing it."""
    return '*' * len(value) if value else 'None'
