"""Configuration management using Pydantic BaseSettings with JSON file support."""
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def flatten_json_config(config: dict[str, Any]) -> dict[str, Any]:
    """Flatten nested JSON config into flat key-value pairs.

    Supports nested structures like:
    {
        "redis": {"redis_host": "localhost", "redis_port": 6379},
        "google_places": {"google_places_api_key": "..."}
    }

    Becomes:
    {"redis_host": "localhost", "redis_port": 6379, "google_places_api_key": "..."}

    Keys starting with "_" (like "_comment") are skipped.
    """
    result = {}

    for key, value in config.items():
        if key.startswith("_"):
            continue

        if isinstance(value, dict):
            result.update(flatten_json_config(value))
        else:
            result[key] = value

    return result


def load_json_config(config_file: Optional[str] = None) -> dict[str, Any]:
    """Load configuration from a JSON file.

    Args:
        config_file: Path to JSON config file. If None, checks CONFIG_FILE env var.

    Returns:
        Flattened configuration values, or empty dict if no usable file was found.
    """
    file_path = config_file or os.getenv("CONFIG_FILE")

    if not file_path:
        return {}

    path = Path(file_path)
    if not path.exists():
        logger.warning(f"Config file not found: {file_path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in config file {file_path}: {e}")
        return {}
    except OSError as e:
        logger.error(f"Error reading config file {file_path}: {e}")
        return {}

    if not isinstance(config, dict):
        logger.error(f"Config file {file_path} must contain a JSON object")
        return {}

    logger.info(f"Loaded configuration from: {file_path}")
    return flatten_json_config(config)


class Settings(BaseSettings):
    """Application configuration with JSON file and environment variable support.

    Configuration priority (highest to lowest):
    1. Environment variables
    2. JSON config file (specified via CONFIG_FILE env var)
    3. Default values
    """

    # Redis Configuration
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str = ""
    redis_db: int = 0

    # Google Places API Configuration
    google_places_api_key: str = ""
    google_places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    google_places_timeout_seconds: float = 10.0
    # Cap on concurrent place-details requests per nearby search
    places_max_concurrent_details: int = 8

    # Caching
    venue_cache_ttl_seconds: int = 60 * 60 * 24  # 24 hours
    directory_cache_ttl_seconds: int = 60 * 60 * 24  # 24 hours
    # Cap on concurrent restaurant upserts after a Places fetch
    venue_upsert_concurrency: int = 10
    # Bound on cached entries (Places searches plus the restaurant listing)
    cache_max_entries: int = 1000

    # Listing
    nearby_limit: int = 15
    default_distance_miles: int = 1
    # Hilton, Salt Lake City
    default_lat: float = 40.7596
    default_lng: float = -111.8867

    # Membership
    membership_max_retries: int = 5

    # Server Configuration
    server_port: int = 8080
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings from JSON file and environment variables.

        Priority: env vars > JSON config > defaults
        """
        json_config = load_json_config()
        # Env vars must still win over the JSON file, so only pass JSON
        # values the environment doesn't define.
        json_config = {
            key: value for key, value in json_config.items() if key.upper() not in os.environ
        }
        merged_kwargs = {**json_config, **kwargs}

        super().__init__(**merged_kwargs)


# Global settings instance
settings = Settings()
