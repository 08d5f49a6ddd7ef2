"""Configuration for the store, the session slot and the services."""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional

DEFAULT_PAGE_SIZE = 9
DEFAULT_RESET_TTL_MINUTES = 15
DEFAULT_ACCESS_TOKEN_TTL_MINUTES = 60 * 24
DEFAULT_ADMIN_EMAIL = "admin@chroma.ai"
DEFAULT_ADMIN_PASSWORD = "password123"
DEFAULT_CONFIG_DIR = "config/environments"

_INT_FIELDS = {"feed_page_size", "reset_token_ttl_minutes", "access_token_ttl_minutes"}


@dataclass
class AppConfig:
    """Settings read from ``<FIELD>`` environment variables or an env file.

    ``store_backend`` is ``sqlite`` for the durable engine or ``memory`` for
    throwaway runs and tests.
    """

    store_backend: str = "sqlite"
    store_path: str = "data/chroma.db"
    session_path: str = "data/session.json"
    feed_page_size: int = DEFAULT_PAGE_SIZE
    reset_token_ttl_minutes: int = DEFAULT_RESET_TTL_MINUTES
    admin_email: str = DEFAULT_ADMIN_EMAIL
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    # Signs the HTTP access tokens; a random key means tokens die with the process.
    secret_key: str = field(default_factory=lambda: secrets.token_urlsafe(32))
    access_token_ttl_minutes: int = DEFAULT_ACCESS_TOKEN_TTL_MINUTES
    log_level: Optional[str] = None
    environment: Optional[str] = None

    def __post_init__(self) -> None:
        self.store_backend = self.store_backend.lower()
        if self.store_backend not in ("sqlite", "memory"):
            raise ValueError(f"Unsupported store backend '{self.store_backend}'")
        if self.feed_page_size < 1:
            raise ValueError("feed_page_size must be positive")
        if self.access_token_ttl_minutes < 1:
            raise ValueError("access_token_ttl_minutes must be positive")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Merge the environment file (if any) with environment variables.

        The file is ``$APP_CONFIG_PATH`` or ``$CHROMA_CONFIG_DIR/<APP_ENV>.yaml``;
        environment variables win over it.
        """

        environment = os.getenv("APP_ENV")
        file_values = cls._load_yaml_config(cls._config_file(environment))

        values: Dict[str, object] = {}
        for option in fields(cls):
            if option.name == "environment":
                continue
            raw = os.getenv(option.name.upper(), file_values.get(option.name))
            if raw is None or raw == "":
                continue
            values[option.name] = int(raw) if option.name in _INT_FIELDS else raw
        return cls(environment=environment, **values)

    @staticmethod
    def _config_file(environment: Optional[str]) -> Optional[Path]:
        explicit = os.getenv("APP_CONFIG_PATH")
        if explicit:
            return Path(explicit)
        if environment:
            return Path(os.getenv("CHROMA_CONFIG_DIR", DEFAULT_CONFIG_DIR)) / f"{environment}.yaml"
        return None

    @staticmethod
    def _load_yaml_config(path: Optional[Path]) -> Dict[str, str]:
        """Read flat ``key: value`` lines; comments and blank lines are skipped."""

        if path is None or not path.exists():
            return {}
        config: Dict[str, str] = {}
        for line in path.read_text().splitlines():
            key, sep, value = line.partition(":")
            key = key.strip()
            if not sep or not key or key.startswith("#"):
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            config[key] = value
        return config
