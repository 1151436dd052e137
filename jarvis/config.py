"""
Configuration management for the Jarvis backend.

Resolution order: environment variables (optionally loaded from a .env
file), then built-in defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional
import os

from dotenv import load_dotenv

from .storage import StorageConfig


TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ResponderConfig:
    """Configuration for the responder worker."""
    api_url: str = "http://localhost:3002"
    poll_interval_seconds: float = 3.0
    timeout_seconds: float = 10.0


@dataclass
class AppConfig:
    """Main application configuration."""
    host: str = "0.0.0.0"
    port: int = 3002
    log_level: str = "INFO"
    seed_defaults: bool = True
    storage: StorageConfig = field(default_factory=StorageConfig)
    responder: ResponderConfig = field(default_factory=ResponderConfig)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True
    ) -> AppConfig:
        """
        Build configuration from the environment.

        Storage defaults to files under ./data, or Redis when REDIS_URL
        is set; JARVIS_STORAGE overrides either.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        redis_url = environ.get("REDIS_URL") or None
        backend_type = environ.get("JARVIS_STORAGE") or ("redis" if redis_url else "file")

        storage = StorageConfig(
            backend_type=backend_type,
            storage_dir=environ.get("JARVIS_DATA_DIR", os.path.join(os.getcwd(), "data")),
            redis_url=redis_url,
        )

        responder = ResponderConfig(
            api_url=environ.get("JARVIS_API_URL", "http://localhost:3002"),
            poll_interval_seconds=float(environ.get("JARVIS_POLL_INTERVAL", "3")),
            timeout_seconds=float(environ.get("JARVIS_HTTP_TIMEOUT", "10")),
        )

        return cls(
            host=environ.get("HOST", "0.0.0.0"),
            port=int(environ.get("PORT", "3002")),
            log_level=environ.get("JARVIS_LOG_LEVEL", "INFO"),
            seed_defaults=environ.get("JARVIS_SEED", "true").strip().lower() in TRUTHY,
            storage=storage,
            responder=responder,
        )
