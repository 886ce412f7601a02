"""
Configuration loader for the ShipStation endpoint.

Loads configuration from YAML files and environment variables with
nested key access.
"""

import logging
import os
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config/app.yaml"

# Used when no configuration file is present
DEFAULTS: dict[str, Any] = {
    "global": {"log_level": "INFO", "log_format": "text"},
    "server": {"host": "0.0.0.0", "port": 8000},
    "shipstation": {
        "rest_base_url": "https://ssapi.shipstation.com",
        "gateway_base_url": "https://shipstation.p.mashape.com",
        "odata_base_url": "https://data.shipstation.com/1.1",
        "timeout_seconds": 300,
        "timezone": "America/Los_Angeles",
        "page_size": 100,
    },
    "observability": {"metrics": {"enabled": True}},
}

# Global configuration cache
_config_cache: dict[str, Any] | None = None


def load_config(config_path: str | None = None) -> dict[str, Any]:
    """Load configuration from YAML file with environment variable support."""
    global _config_cache

    if _config_cache is not None:
        return _config_cache

    # Load environment variables
    load_dotenv()

    config_file = Path(
        config_path or os.getenv("SHIPSTATION_ENDPOINT_CONFIG", DEFAULT_CONFIG_PATH)
    )
    if config_file.exists():
        with open(config_file) as f:
            config = yaml.safe_load(f) or {}
    else:
        logger.warning(f"Configuration file not found: {config_file}, using defaults")
        config = DEFAULTS

    _config_cache = config
    return config


def cfg(key: str, default: Any = None) -> Any:
    """
    Get configuration value using dot notation.

    Args:
        key: Dot-separated key path (e.g., "shipstation.timeout_seconds")
        default: Default value if key is not found

    Returns:
        Configuration value or default

    Examples:
        cfg("global.log_level", "INFO")
        cfg("shipstation.timezone", "America/Los_Angeles")
    """
    config = load_config()

    # Handle simple key
    if "." not in key:
        return config.get(key, default)

    # Handle nested key with dot notation
    keys = key.split(".")
    value = config

    try:
        for k in keys:
            value = value[k]
        return value
    except (KeyError, TypeError):
        return default


def env(key: str, default: str = None) -> str | None:
    """Get environment variable with optional default."""
    return os.getenv(key, default)


def get_shipstation_settings() -> dict[str, Any]:
    """
    Get the ShipStation connection settings.

    Returns:
        Dict with base URLs per API generation, timeout, remote timezone
        and default page size.
    """
    defaults = DEFAULTS["shipstation"]
    return {
        "rest_base_url": cfg("shipstation.rest_base_url", defaults["rest_base_url"]),
        "gateway_base_url": cfg("shipstation.gateway_base_url", defaults["gateway_base_url"]),
        "odata_base_url": cfg("shipstation.odata_base_url", defaults["odata_base_url"]),
        "timeout_seconds": float(cfg("shipstation.timeout_seconds", defaults["timeout_seconds"])),
        "timezone": cfg("shipstation.timezone", defaults["timezone"]),
        "page_size": int(cfg("shipstation.page_size", defaults["page_size"])),
    }


def get_fallback_credentials() -> dict[str, str]:
    """Get credentials from the environment for requests that carry none."""
    fallback = {
        "key": env("SHIPSTATION_API_KEY"),
        "secret": env("SHIPSTATION_API_SECRET"),
        "shipstation_store_id": env("SHIPSTATION_STORE_ID"),
    }
    return {name: value for name, value in fallback.items() if value}


def get_remote_timezone() -> ZoneInfo:
    """Get the zone ShipStation reports its dates in."""
    return ZoneInfo(get_shipstation_settings()["timezone"])


# Configuration validation
def validate_config() -> None:
    """Validate configuration values."""
    errors = []

    try:
        settings = get_shipstation_settings()
    except (TypeError, ValueError) as e:
        raise ValueError(f"Configuration validation failed:\n  - shipstation: {e}") from e

    try:
        ZoneInfo(settings["timezone"])
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"Unknown shipstation.timezone: {settings['timezone']}")

    if settings["timeout_seconds"] <= 0:
        errors.append("shipstation.timeout_seconds must be positive")

    if settings["page_size"] < 1 or settings["page_size"] > 500:
        errors.append("shipstation.page_size must be between 1 and 500")

    if errors:
        raise ValueError(
            "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
        )


def reload_config() -> None:
    """Force reload of configuration cache."""
    global _config_cache
    _config_cache = None
