"""Configuration management for SimpleIPAM."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import yaml


class ConfigError(Exception):
    """Configuration error."""
    pass


DEFAULT_KEYCLOAK_URL = "http://localhost:8080"
DEFAULT_KEYCLOAK_REALM = "ipam"
DEFAULT_KEYCLOAK_CLIENT_ID = "ipam-fe"

_TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass
class APIConfig:
    base_url: str = "http://localhost:8080/api/v1"
    verify_ssl: bool = True
    timeout: int = 15


@dataclass
class AuthConfig:
    url: str = ""
    realm: str = ""
    client_id: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.url or self.realm or self.client_id)

    def with_defaults(self) -> "AuthConfig":
        """Fill unset identity-provider fields once authentication is on."""
        if not self.enabled:
            return self
        return AuthConfig(
            url=self.url or DEFAULT_KEYCLOAK_URL,
            realm=self.realm or DEFAULT_KEYCLOAK_REALM,
            client_id=self.client_id or DEFAULT_KEYCLOAK_CLIENT_ID,
        )


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    file: str = ""


@dataclass
class Config:
    api: APIConfig = field(default_factory=APIConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    CONFIG_PATHS = [
        Path.home() / ".config" / "simpleipam" / "config.yaml",
        Path.home() / ".config" / "simpleipam" / "config.yml",
        Path("config") / "config.yaml",
        Path("config") / "config.yml",
    ]

    @classmethod
    def find_config_file(cls) -> Optional[Path]:
        """Find the first existing config file."""
        for path in cls.CONFIG_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def load(
        cls,
        path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """Load configuration from YAML (if any), then the environment.

        Environment variables win over the file.  Having no file at all is
        fine; every setting has a default.
        """
        if environ is None:
            environ = os.environ
        if path is None:
            path = cls.find_config_file()
        elif not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        data: dict = {}
        if path is not None:
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to read config file {path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")

        config = cls()

        # Parse api section
        if isinstance(data.get("api"), dict):
            api = data["api"]
            config.api = APIConfig(
                base_url=str(api.get("base_url", config.api.base_url)),
                verify_ssl=bool(api.get("verify_ssl", True)),
                timeout=_as_int(api.get("timeout", 15), "api.timeout"),
            )

        # Parse auth section
        if isinstance(data.get("auth"), dict):
            auth = data["auth"]
            config.auth = AuthConfig(
                url=str(auth.get("url") or ""),
                realm=str(auth.get("realm") or ""),
                client_id=str(auth.get("client_id") or ""),
            )

        # Parse logging section
        if isinstance(data.get("logging"), dict):
            log = data["logging"]
            config.logging = LoggingConfig(
                level=str(log.get("level", "WARNING")).upper(),
                file=str(log.get("file") or ""),
            )

        config._apply_environ(environ)
        config.api.base_url = config.api.base_url.rstrip("/")
        config.auth = config.auth.with_defaults()
        return config

    def _apply_environ(self, environ: Mapping[str, str]) -> None:
        if environ.get("IPAM_API_BASE"):
            self.api.base_url = environ["IPAM_API_BASE"]
        if environ.get("IPAM_VERIFY_SSL"):
            self.api.verify_ssl = environ["IPAM_VERIFY_SSL"].strip().lower() in _TRUE_STRINGS
        if environ.get("IPAM_KEYCLOAK_URL"):
            self.auth.url = environ["IPAM_KEYCLOAK_URL"]
        if environ.get("IPAM_KEYCLOAK_REALM"):
            self.auth.realm = environ["IPAM_KEYCLOAK_REALM"]
        if environ.get("IPAM_KEYCLOAK_CLIENT_ID"):
            self.auth.client_id = environ["IPAM_KEYCLOAK_CLIENT_ID"]
        if environ.get("IPAM_LOG_LEVEL"):
            self.logging.level = environ["IPAM_LOG_LEVEL"].upper()
        if environ.get("IPAM_LOG_FILE"):
            self.logging.file = environ["IPAM_LOG_FILE"]


def _as_int(value, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
