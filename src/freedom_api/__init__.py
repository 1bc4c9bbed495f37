"""
Freedom API - ATLAS Freedom Ground Station Client

Async Python client for the ATLAS Freedom satellite scheduling service.

Example:
    >>> from freedom_api import Client
    >>> client = Client.from_env()
    >>>
    >>> # Walk a paginated collection
    >>> async for band in client.get_satellite_bands():
    ...     print(f"{band.name}: {band.frequency_mghz} MHz")
    >>>
    >>> # Cache repeated lookups
    >>> cached = CachingClient(client)
    >>> request = await cached.get_request_by_id(42)
    >>> site = await request.get_site(cached)
"""

__version__ = "0.1.0"

# Clients
from .api import Api, error_on_non_success
from .client import Client
from .caching_client import CachingClient
from .gateway import GatewayApi

# Containers and pagination
from .container import Container, Inner, Shared, Value
from .pagination import Page, PaginatedStream

# Types
from .types import (
    Account,
    Band,
    Location,
    Satellite,
    SatelliteConfiguration,
    Site,
    SiteConfiguration,
    Task,
    TaskRequest,
    TaskStatus,
    TaskType,
    TimeRange,
    TwoLineElement,
    User,
)

# Configuration
from .config import Config, Environment

# Errors
from .errors import (
    FreedomError,
    ConfigurationError,
    MissingCredentialsError,
    ResponseError,
    TimeoutError,
    ResponseStatusError,
    NotFoundError,
    DeserializationError,
    PaginationItemError,
    PaginationLinkError,
    InvalidUriError,
    MissingUriError,
    InvalidIdError,
    TimeFormatError,
    ValidationError,
)

# Auth utilities
from .auth import validate_credentials, mask_secret

__all__ = [
    "__version__",
    # Clients
    "Api",
    "Client",
    "CachingClient",
    "GatewayApi",
    "error_on_non_success",
    # Containers and pagination
    "Container",
    "Inner",
    "Shared",
    "Value",
    "Page",
    "PaginatedStream",
    # Types
    "Account",
    "Band",
    "Location",
    "Satellite",
    "SatelliteConfiguration",
    "Site",
    "SiteConfiguration",
    "Task",
    "TaskRequest",
    "TaskStatus",
    "TaskType",
    "TimeRange",
    "TwoLineElement",
    "User",
    # Config
    "Config",
    "Environment",
    # Errors
    "FreedomError",
    "ConfigurationError",
    "MissingCredentialsError",
    "ResponseError",
    "TimeoutError",
    "ResponseStatusError",
    "NotFoundError",
    "DeserializationError",
    "PaginationItemError",
    "PaginationLinkError",
    "InvalidUriError",
    "MissingUriError",
    "InvalidIdError",
    "TimeFormatError",
    "ValidationError",
    # Auth
    "validate_credentials",
    "mask_secret",
]
