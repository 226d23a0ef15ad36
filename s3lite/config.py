"""Configuration loading for the command-line client.

Supports two configuration sources:
1. Environment variables - take priority
2. A JSON file (for local development)

Environment Variable Format:
    S3LITE_ACCESS_KEY=xxx
    S3LITE_SECRET_KEY=xxx
    S3LITE_BUCKET=xxx
    S3LITE_REGION=eu-west-1      (optional, default us-east-1)
    S3LITE_ENDPOINT=https://...  (optional, S3-compatible services)

JSON Format:
    {
        "access_key": "xxx",
        "secret_key": "xxx",
        "bucket": "xxx",
        "region": "eu-west-1",
        "endpoint": null
    }

The client itself never reads configuration; only the CLI does.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from s3lite.constants import DEFAULT_REGION, Region
from s3lite.errors import S3LiteError

DEFAULT_CONFIG_PATH = "s3lite.json"

ENV_PREFIX = "S3LITE_"

# Required fields for a client configuration
REQUIRED_FIELDS = [
    "access_key",
    "secret_key",
    "bucket",
]


class ConfigError(S3LiteError):
    """Raised when configuration loading fails."""

    pass


@dataclass(frozen=True)
class ClientConfig:
    """Settings needed to construct an ObjectStoreClient."""

    access_key: str
    secret_key: str = field(repr=False)
    bucket: str = ""
    region: str = DEFAULT_REGION.value
    endpoint: Optional[str] = None


def _build_config(values: dict[str, Any], source: str) -> ClientConfig:
    for name in REQUIRED_FIELDS:
        if not values.get(name):
            raise ConfigError(f"Missing required field '{name}' in {source}")

    region = values.get("region") or DEFAULT_REGION.value
    endpoint = values.get("endpoint") or None
    if endpoint is None:
        # Without a custom endpoint the region must map to an AWS host
        try:
            region = Region.parse(region).value
        except ValueError as e:
            raise ConfigError(f"{e} in {source}") from e

    return ClientConfig(
        access_key=values["access_key"],
        secret_key=values["secret_key"],
        bucket=values["bucket"],
        region=region,
        endpoint=endpoint,
    )


def load_from_json(config_path: str) -> ClientConfig:
    """Load the client configuration from a JSON file.

    Args:
        config_path: Path to the JSON file.

    Returns:
        The ClientConfig.

    Raises:
        ConfigError: If the file doesn't exist, contains invalid JSON,
                    or is missing required fields.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Config file must contain a JSON object")

    return _build_config(data, config_path)


def load_from_env() -> ClientConfig:
    """Load the client configuration from ``S3LITE_*`` environment variables.

    Raises:
        ConfigError: If a required variable is missing.
    """
    values = {
        "access_key": os.environ.get(f"{ENV_PREFIX}ACCESS_KEY"),
        "secret_key": os.environ.get(f"{ENV_PREFIX}SECRET_KEY"),
        "bucket": os.environ.get(f"{ENV_PREFIX}BUCKET"),
        "region": os.environ.get(f"{ENV_PREFIX}REGION"),
        "endpoint": os.environ.get(f"{ENV_PREFIX}ENDPOINT"),
    }
    return _build_config(values, "environment")


def has_env_config() -> bool:
    """Check if any S3LITE_* environment variables exist."""
    return any(key.startswith(ENV_PREFIX) for key in os.environ)


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> ClientConfig:
    """Load the client configuration with environment priority.

    Priority order:
    1. Environment variables (if any S3LITE_* vars exist)
    2. The JSON file

    Args:
        config_path: Path to the JSON file (used as fallback).

    Raises:
        ConfigError: If neither source provides a configuration.
    """
    if has_env_config():
        return load_from_env()
    if Path(config_path).exists():
        return load_from_json(config_path)

    raise ConfigError(
        f"No configuration found. Set {ENV_PREFIX}* environment variables "
        f"or create {config_path}."
    )
