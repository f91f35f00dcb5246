"""
Client configuration.

Settings can come from the environment or from a YAML file:

```yaml
firebase_auth:
  api_key: "AIza..."
  locale: "de"
  refresh_margin: 60
  auto_refresh: true
  timeout: 30
  emulator_host: "localhost:9099"   # optional
```
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"

# Seconds before token expiry at which the autonomous refresh fires.
DEFAULT_REFRESH_MARGIN = 60.0
DEFAULT_TIMEOUT = 30.0


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class AuthConfig:
    """Configuration for the Firebase auth client."""

    api_key: str
    locale: str | None = None
    refresh_margin: float = DEFAULT_REFRESH_MARGIN
    auto_refresh: bool = True
    timeout: float = DEFAULT_TIMEOUT
    identity_toolkit_url: str = IDENTITY_TOOLKIT_URL
    secure_token_url: str = SECURE_TOKEN_URL

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ConfigurationError("api_key", "must not be empty")
        if self.refresh_margin < 0:
            raise ConfigurationError("refresh_margin", "must be >= 0")
        if self.timeout <= 0:
            raise ConfigurationError("timeout", "must be > 0")

    @staticmethod
    def emulator_urls(host: str) -> tuple[str, str]:
        """Return the (identity toolkit, secure token) URLs for an auth emulator."""
        base = f"http://{host.rstrip('/')}"
        return (
            f"{base}/identitytoolkit.googleapis.com/v1",
            f"{base}/securetoken.googleapis.com/v1",
        )

    @classmethod
    def from_env(cls) -> AuthConfig:
        """Create config from environment variables."""
        api_key = os.environ.get("FIREBASE_API_KEY")
        if not api_key:
            raise ConfigurationError("api_key", "FIREBASE_API_KEY not set")

        try:
            refresh_margin = float(
                os.environ.get("FIREBASE_AUTH_REFRESH_MARGIN", DEFAULT_REFRESH_MARGIN)
            )
            timeout = float(os.environ.get("FIREBASE_AUTH_TIMEOUT", DEFAULT_TIMEOUT))
        except ValueError as e:
            raise ConfigurationError("environment", str(e)) from e

        identity_url, token_url = IDENTITY_TOOLKIT_URL, SECURE_TOKEN_URL
        emulator_host = os.environ.get("FIREBASE_AUTH_EMULATOR_HOST")
        if emulator_host:
            logger.info(f"Using Firebase auth emulator at {emulator_host}")
            identity_url, token_url = cls.emulator_urls(emulator_host)

        return cls(
            api_key=api_key,
            locale=os.environ.get("FIREBASE_AUTH_LOCALE") or None,
            refresh_margin=refresh_margin,
            auto_refresh=_parse_bool(os.environ.get("FIREBASE_AUTH_AUTO_REFRESH", "true")),
            timeout=timeout,
            identity_toolkit_url=identity_url,
            secure_token_url=token_url,
        )

    @classmethod
    def from_file(cls, path: Path) -> AuthConfig:
        """Create config from the ``firebase_auth`` section of a YAML file."""
        try:
            content = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(str(path), f"cannot read config: {e}") from e

        section: dict[str, Any] = content.get("firebase_auth") or {}
        if not section.get("api_key"):
            raise ConfigurationError("api_key", f"missing in {path}")

        identity_url = section.get("identity_toolkit_url", IDENTITY_TOOLKIT_URL)
        token_url = section.get("secure_token_url", SECURE_TOKEN_URL)
        if section.get("emulator_host"):
            identity_url, token_url = cls.emulator_urls(section["emulator_host"])

        return cls(
            api_key=section["api_key"],
            locale=section.get("locale"),
            refresh_margin=float(section.get("refresh_margin", DEFAULT_REFRESH_MARGIN)),
            auto_refresh=bool(section.get("auto_refresh", True)),
            timeout=float(section.get("timeout", DEFAULT_TIMEOUT)),
            identity_toolkit_url=identity_url,
            secure_token_url=token_url,
        )
