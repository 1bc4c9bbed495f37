"""
Freedom API - Client

Async client using httpx, authenticating with HTTP Basic auth.
"""

import logging
from typing import Any, List, Optional, Tuple

import httpx

from .api import Api, URLTypes
from .auth import get_auth, mask_secret
from .config import Config
from .container import Inner
from .errors import InvalidUriError, ResponseError, TimeoutError as FreedomTimeoutError

logger = logging.getLogger(__name__)


class Client(Api):
    """Async client for the ATLAS Freedom API.

    Results are wrapped in ``Inner`` containers: each call hands out a value
    owned by the caller.

    Example:
        >>> import asyncio
        >>> from freedom_api import Client, Config, Environment
        >>>
        >>> async def main():
        ...     config = Config(environment=Environment.TEST, key="foo", secret="bar")
        ...     async with Client.from_config(config) as client:
        ...         satellite = await client.get_satellite_by_id(710)
        ...         print(satellite.name)
        >>>
        >>> asyncio.run(main())
    """

    USER_AGENT = "freedom-api-python/0.1.0"

    container = Inner

    def __init__(
        self,
        config: Config,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        universal_headers: Optional[List[Tuple[str, str]]] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the client.

        Args:
            config: Environment and credentials to use
            transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
            universal_headers: Headers added to every GET, POST and DELETE
            http_client: Existing httpx client to share a connection pool with
        """
        self._config = config
        self._universal_headers: List[Tuple[str, str]] = list(universal_headers or [])
        if http_client is None:
            http_client = httpx.AsyncClient(
                auth=get_auth(config.key, config.expose_secret()),
                headers={"User-Agent": self.USER_AGENT, "Accept": "application/json"},
                timeout=config.timeout,
                transport=transport,
            )
        self._client = http_client
        logger.debug("Created Freedom client for %s (key %s)", config.freedom_entrypoint, mask_secret(config.key))

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "Client":
        """Construct a client from an existing config."""
        return cls(config, **kwargs)

    @classmethod
    def from_env(cls, **kwargs: Any) -> "Client":
        """Construct a client from environment variables.

        Expects ATLAS_ENV (test or prod), ATLAS_KEY and ATLAS_SECRET.

        Raises:
            ConfigurationError: If a variable is missing or invalid
        """
        return cls(Config.from_env(), **kwargs)

    def with_universal_header(self, key: str, value: str) -> "Client":
        """Return a client that also sends ``key: value`` on every request.

        The new client shares this client's connection pool; this client is
        left unchanged.
        """
        return type(self)(
            self._config,
            universal_headers=self._universal_headers + [(key, value)],
            http_client=self._client,
        )

    @property
    def config(self) -> Config:
        return self._config

    @property
    def universal_headers(self) -> List[Tuple[str, str]]:
        return list(self._universal_headers)

    # =========================================================================
    # Transport
    # =========================================================================

    async def _send(self, method: str, url: URLTypes, body: Any = None) -> Tuple[bytes, int]:
        headers = self._universal_headers or None
        logger.debug("%s %s", method, url)
        try:
            if body is None:
                response = await self._client.request(method, url, headers=headers)
            else:
                response = await self._client.request(method, url, headers=headers, json=body)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, url)
            raise FreedomTimeoutError(self._config.timeout) from e
        except httpx.InvalidURL as e:
            raise InvalidUriError(str(e)) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise ResponseError(str(e), original_error=e) from e

        logger.debug("%s %s -> %d (%d bytes)", method, url, response.status_code, len(response.content))
        return response.content, response.status_code

    async def get(self, url: URLTypes) -> Tuple[bytes, int]:
        return await self._send("GET", url)

    async def post(self, url: URLTypes, body: Any) -> Tuple[bytes, int]:
        return await self._send("POST", url, body)

    async def delete(self, url: URLTypes) -> Tuple[bytes, int]:
        return await self._send("DELETE", url)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Client):
            return NotImplemented
        return self._config == other._config

    __hash__ = None

    def __repr__(self) -> str:
        return f"Client(config={self._config!r})"
