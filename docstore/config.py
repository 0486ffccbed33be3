"""
Configuration helpers for the document store.
Supports environment variables for easy deployment configuration.
"""

import os
from typing import Any, Dict, Optional

from .exceptions import ValidationError


class Config:
    """
    Configuration helper that reads from environment variables.

    Environment variables:
        ARANGO_URL: ArangoDB server URL (default: http://localhost:8529)
        ARANGO_DATABASE: Database name (default: _system)
        ARANGO_USERNAME: Basic auth user (default: root)
        ARANGO_PASSWORD: Basic auth password (default: empty)
        DOCSTORE_COLLECTION_PREFIX: Collection namespace (default: em_ds_)
        DOCSTORE_MAX_BATCHES: Cursor batch bound per query, 0 disables (default: 10000)
        DOCSTORE_BATCH_SIZE: Cursor batch size (default: server default)
        DOCSTORE_REQUEST_TIMEOUT: HTTP request timeout in seconds (default: 30)
    """

    @staticmethod
    def from_env() -> Dict[str, Any]:
        """
        Create configuration from environment variables.

        Returns:
            Dict with configuration parameters for DocumentStore.from_config

        Example:
            from docstore import DocumentStore
            from docstore.config import Config

            config = Config.from_env()
            store = DocumentStore.from_config(config)
        """
        config = {
            "url": os.getenv("ARANGO_URL", "http://localhost:8529"),
            "database": os.getenv("ARANGO_DATABASE", "_system"),
            "username": os.getenv("ARANGO_USERNAME", "root"),
            "password": os.getenv("ARANGO_PASSWORD", ""),
            "collection_prefix": os.getenv("DOCSTORE_COLLECTION_PREFIX", "em_ds_"),
            "request_timeout": _float_env("DOCSTORE_REQUEST_TIMEOUT", 30.0),
        }

        max_batches = _int_env("DOCSTORE_MAX_BATCHES", 10000)
        # 0 means unbounded
        config["max_batches"] = max_batches or None

        batch_size = _int_env("DOCSTORE_BATCH_SIZE", None)
        if batch_size:
            config["batch_size"] = batch_size

        return config

    @staticmethod
    def for_docker(host: str = "localhost", port: int = 8529, password: str = "") -> Dict[str, Any]:
        """
        Configuration for Docker deployment.

        Args:
            host: Docker host (default: localhost)
            port: ArangoDB port (default: 8529)
            password: Root password set for the container

        Returns:
            Configuration dict for Docker setup
        """
        return {
            "url": f"http://{host}:{port}",
            "database": "_system",
            "username": "root",
            "password": password,
            "collection_prefix": "em_ds_"
        }

    @staticmethod
    def for_local(database: str = "_system") -> Dict[str, Any]:
        """
        Configuration for a local server without authentication.

        Args:
            database: Database name

        Returns:
            Configuration dict for local setup
        """
        return {
            "url": "http://localhost:8529",
            "database": database,
            "username": None,
            "collection_prefix": "em_ds_"
        }


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {value!r}")


def _float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got {value!r}")
