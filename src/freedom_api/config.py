"""
Freedom API - Configuration

Client configuration, target environments and environment-variable loading.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging
import os

from .auth import validate_credentials
from .errors import ConfigurationError


class Environment(str, Enum):
    """Freedom deployment targeted by a client."""

    TEST = "test"
    PROD = "prod"

    @property
    def entrypoint(self) -> str:
        """Base URL that relative API paths are resolved against."""
        return _ENTRYPOINTS[self]

    @classmethod
    def from_str(cls, value: str) -> "Environment":
        """Parse an environment name, case-insensitively.

        Raises:
            ConfigurationError: If the name is not a known environment
        """
        normalized = value.strip().lower()
        for env in cls:
            if env.value == normalized:
                return env
        raise ConfigurationError(
            f"Unknown Freedom environment {value!r} (expected 'test' or 'prod')"
        )


_ENTRYPOINTS = {
    Environment.TEST: "https://test-api.atlasground.com/api/",
    Environment.PROD: "https://api.atlasground.com/api/",
}


@dataclass(frozen=True)
class Config:
    """Client configuration settings.

    A config is immutable once built; derive a modified copy with
    ``dataclasses.replace`` instead of mutating it.

    Attributes:
        environment: Freedom environment to talk to
        key: ATLAS Freedom key registered with an account
        secret: ATLAS Freedom secret registered with an account
        entrypoint: Override for the environment's base URL
        timeout: Request timeout in seconds (None disables the timeout)
        debug: Enable debug logging for the package

    Example:
        >>> config = Config(environment=Environment.TEST, key="foo", secret="bar")
        >>> config.freedom_entrypoint
        'https://test-api.atlasground.com/api/'
    """

    environment: Environment = Environment.TEST
    key: str = ""
    secret: str = ""
    entrypoint: Optional[str] = None
    timeout: Optional[float] = 30.0
    debug: bool = False

    def __post_init__(self):
        if self.debug or os.environ.get("FREEDOM_DEBUG", "").lower() in ("1", "true", "yes"):
            logging.getLogger("freedom_api").setLevel(logging.DEBUG)

    @property
    def freedom_entrypoint(self) -> str:
        """Base URL for API paths, always ending in a slash."""
        url = self.entrypoint or self.environment.entrypoint
        if not url.endswith("/"):
            url += "/"
        return url

    def expose_secret(self) -> str:
        """Return the secret in clear text, for building auth headers only."""
        return self.secret

    def __repr__(self) -> str:
        return (
            f"Config(environment={self.environment.value!r}, key={self.key!r}, "
            f"secret='****', entrypoint={self.freedom_entrypoint!r})"
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Build a config from environment variables.

        Reads:
            ATLAS_ENV: test or prod
            ATLAS_KEY: The ATLAS Freedom key registered with an account
            ATLAS_SECRET: The ATLAS Freedom secret registered with an account
            ATLAS_ENTRYPOINT: Optional base URL override

        Raises:
            ConfigurationError: If ATLAS_ENV is missing or unknown
            MissingCredentialsError: If the key or secret is missing
        """
        env_name = os.environ.get("ATLAS_ENV")
        if not env_name:
            raise ConfigurationError("ATLAS_ENV is not set (expected 'test' or 'prod')")

        key = os.environ.get("ATLAS_KEY", "")
        secret = os.environ.get("ATLAS_SECRET", "")
        validate_credentials(key, secret)

        return cls(
            environment=Environment.from_str(env_name),
            key=key,
            secret=secret,
            entrypoint=os.environ.get("ATLAS_ENTRYPOINT") or None,
        )
