"""
Configuration loader for the REST cache client.

Looks for config.yaml in this order:
1. Explicit path passed to ``Config``
2. Environment variable REST_CACHE_CONFIG
3. ./config.yaml (local development)
4. Falls back to default config
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SimpleRestCache/1.0)"


class Config:
    def __init__(self, config_path: str | None = None):
        # Determine config path in order of priority
        if config_path:
            self.config_path = Path(config_path)
        elif os.getenv("REST_CACHE_CONFIG"):
            self.config_path = Path(os.getenv("REST_CACHE_CONFIG"))
        elif Path("./config.yaml").exists():
            self.config_path = Path("./config.yaml")
        else:
            self.config_path = None

        self._config = self._load_config()

    def _load_config(self) -> dict[str, Any]:
        """
        Load configuration from the YAML file.

        Returns default config if file not found or unreadable.
        """
        if self.config_path and self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.debug("Loaded config from: %s", self.config_path)
                return config_data
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Error loading config from %s: %s", self.config_path, e)
        elif self.config_path:
            logger.warning("Config file not found: %s, using defaults", self.config_path)

        return {
            "client": {
                "base_url": "",
                "default_max_age": 15,
                "request_timeout": 30,
                "user_agent": DEFAULT_USER_AGENT,
                "log_level": "INFO",
            }
        }

    def _client_section(self) -> dict[str, Any]:
        section = self._config.get("client", {})
        return section if isinstance(section, dict) else {}

    @property
    def base_url(self) -> str:
        env_url = os.getenv("REST_CACHE_BASE_URL")
        if env_url:
            return env_url
        return self._client_section().get("base_url", "")

    @property
    def default_max_age(self) -> float:
        """Freshness window in seconds applied when a resource type sets none."""
        return self._client_section().get("default_max_age", 15)

    @property
    def request_timeout(self) -> float:
        return self._client_section().get("request_timeout", 30)

    @property
    def user_agent(self) -> str:
        return self._client_section().get("user_agent", DEFAULT_USER_AGENT)

    @property
    def log_level(self) -> str:
        return str(self._client_section().get("log_level", "INFO")).upper()

    @property
    def default_headers(self) -> dict[str, str]:
        """Extra HTTP headers sent with every request."""
        headers = self._client_section().get("headers", {})
        return headers if isinstance(headers, dict) else {}


def configure_logging(level: str | None = None) -> None:
    """Configure root logging the way the smoke script and applications expect."""
    logging.basicConfig(
        level=level or config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Global config singleton supplying client defaults
config = Config()
