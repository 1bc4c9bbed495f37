"""
Freedom API - Request Surface

``Api`` holds every request the library can make. Concrete clients only
provide the transport (``get``, ``post``, ``delete``), the ``config`` and the
container their results are wrapped in; everything else is shared.

Single resources are returned as ``Container[Model]``, collections either as a
``PaginatedStream`` (walked lazily page by page) or, for endpoints that answer
with one embedded list, as ``Container[List[Model]]``.

Example:
    >>> async with Client.from_env() as client:
    ...     account = await client.get_account_by_name("ATLAS")
    ...     async for site in client.get_sites():
    ...         print(site.name)
"""

import abc
import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type, Union

import httpx

from .config import Config
from .container import Container, Inner
from .errors import (
    DeserializationError,
    InvalidUriError,
    MissingUriError,
    NotFoundError,
    ResponseError,
    ResponseStatusError,
)
from .gateway import GatewayApi
from .pagination import PaginatedStream
from .types import (
    Account,
    Band,
    Satellite,
    SatelliteConfiguration,
    Site,
    SiteConfiguration,
    Task,
    TaskRequest,
    TaskStatus,
    TaskType,
    User,
)
from .utils import format_datetime, list_to_string

logger = logging.getLogger(__name__)

URLTypes = Union[str, httpx.URL]


def error_on_non_success(status: int, body: bytes) -> None:
    """Raise ``ResponseStatusError`` unless ``status`` is 2xx.

    The response body is kept on the error, decoded leniently.
    """
    if 200 <= status < 300:
        return
    text = body.decode("utf-8", errors="replace")
    if status == 404:
        raise NotFoundError(text)
    raise ResponseStatusError(status, text)


def _embedded_items(data: Any) -> List[Any]:
    """Pull the item list out of an embedded-list response."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        embedded = data.get("_embedded")
        if isinstance(embedded, dict):
            items: List[Any] = []
            for value in embedded.values():
                if isinstance(value, list):
                    items.extend(value)
            return items
        if isinstance(data.get("items"), list):
            return data["items"]
    raise DeserializationError("expected an embedded list of items")


class Api(GatewayApi, abc.ABC):
    """Abstract Freedom API client.

    Subclasses implement the three transport primitives. Each primitive
    returns the raw response body and the HTTP status; status checking and
    decoding happen here.
    """

    #: Container type wrapping every decoded result
    container: Type[Container] = Inner

    @property
    @abc.abstractmethod
    def config(self) -> Config:
        """Configuration of this client."""

    @abc.abstractmethod
    async def get(self, url: URLTypes) -> Tuple[bytes, int]:
        """GET ``url`` and return ``(body, status)``."""

    @abc.abstractmethod
    async def post(self, url: URLTypes, body: Any) -> Tuple[bytes, int]:
        """POST ``body`` as JSON to ``url`` and return ``(body, status)``."""

    @abc.abstractmethod
    async def delete(self, url: URLTypes) -> Tuple[bytes, int]:
        """DELETE ``url`` and return ``(body, status)``."""

    # =========================================================================
    # URL construction
    # =========================================================================

    def path_to_url(self, path: str) -> httpx.URL:
        """Resolve ``path`` against the configured entrypoint.

        Raises:
            InvalidUriError: If the result is not a valid URL
        """
        try:
            return httpx.URL(self.config.freedom_entrypoint).join(path)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidUriError(str(e)) from e

    def url_with_query(self, path: str, params: Mapping[str, Any]) -> httpx.URL:
        """Resolve ``path`` and attach the query ``params``.

        Raises:
            InvalidUriError: If the result is not a valid URL
        """
        url = self.path_to_url(path)
        try:
            return url.copy_merge_params(params)
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise InvalidUriError(str(e)) from e

    def resolve_link(self, link: URLTypes) -> httpx.URL:
        """Turn a link taken from a payload into an absolute URL.

        Links with a host are used as they are; anything else is resolved
        against the entrypoint.

        Raises:
            InvalidUriError: If the link cannot be turned into a URL
        """
        if isinstance(link, httpx.URL):
            return link
        if not isinstance(link, str) or not link.strip():
            raise InvalidUriError(f"{link!r} is not a link")
        try:
            url = httpx.URL(link)
        except (httpx.InvalidURL, ValueError) as e:
            raise InvalidUriError(str(e)) from e
        if url.host:
            return url
        if url.scheme:
            raise InvalidUriError(f"{link!r} has a scheme but no host")
        return self.path_to_url(link)

    def link_url(self, links: Mapping[str, str], relation: str) -> httpx.URL:
        """Resolve the link registered under ``relation``.

        Raises:
            MissingUriError: If there is no such relation
            InvalidUriError: If the link is malformed
        """
        link = links.get(relation)
        if link is None:
            raise MissingUriError(relation)
        return self.resolve_link(link)

    # =========================================================================
    # Generic requests
    # =========================================================================

    async def get_json(self, url: URLTypes) -> Any:
        """GET ``url``, check the status and parse the JSON body."""
        body, status = await self.get(url)
        error_on_non_success(status, body)
        return self._parse_json(body)

    @staticmethod
    def _parse_json(body: bytes) -> Any:
        try:
            return json.loads(body.decode("utf-8", errors="replace"))
        except ValueError as e:
            raise DeserializationError(f"invalid JSON: {e}") from e

    async def get_json_map(self, url: URLTypes, value_type: Any) -> Container[Any]:
        """GET ``url`` and decode the body into ``value_type``.

        Raises:
            ResponseError: If no response could be obtained
            ResponseStatusError: If the status is not 2xx
            DeserializationError: If the body does not decode
        """
        data = await self.get_json(url)
        return self.container.decode(value_type, data)

    async def post_json_map(
        self, url: URLTypes, body: Any, value_type: Any = dict
    ) -> Container[Any]:
        """POST ``body`` as JSON and decode the response into ``value_type``."""
        raw, status = await self.post(url, body)
        error_on_non_success(status, raw)
        return self.container.decode(value_type, self._parse_json(raw))

    def get_paginated(self, url: URLTypes, value_type: Any) -> PaginatedStream[Container[Any]]:
        """Stream every item of the paginated collection starting at ``url``.

        See ``PaginatedStream`` for the error behaviour.
        """
        return PaginatedStream(self, url, value_type)

    async def get_embedded(self, url: URLTypes, value_type: Any) -> Container[List[Any]]:
        """GET a non-paginated embedded list and decode every item."""
        data = await self.get_json(url)
        return self.container.decode(List[value_type], _embedded_items(data))

    async def get_link(
        self, links: Mapping[str, str], relation: str, value_type: Any
    ) -> Container[Any]:
        """Follow the ``relation`` link and decode the target."""
        return await self.get_json_map(self.link_url(links, relation), value_type)

    async def _delete_path(self, path: str) -> None:
        url = self.path_to_url(path)
        body, status = await self.delete(url)
        error_on_non_success(status, body)

    def _window(self, start: datetime, end: datetime) -> Dict[str, str]:
        return {"start": format_datetime(start), "end": format_datetime(end)}

    # =========================================================================
    # Accounts
    # =========================================================================

    async def get_account_by_id(self, account_id: int) -> Container[Account]:
        """Fetch the account with the given id."""
        return await self.get_json_map(self.path_to_url(f"accounts/{account_id}"), Account)

    async def get_account_by_name(self, name: str) -> Container[Account]:
        """Fetch the account with the given name.

        Example:
            >>> account = await client.get_account_by_name("ATLAS")
            >>> print(account.name)
        """
        url = self.url_with_query("accounts/search/findOneByName", {"name": name})
        return await self.get_json_map(url, Account)

    def get_accounts(self) -> PaginatedStream[Container[Account]]:
        """Stream every account."""
        return self.get_paginated(self.path_to_url("accounts"), Account)

    # =========================================================================
    # Satellite Bands
    # =========================================================================

    def get_satellite_bands(self) -> PaginatedStream[Container[Band]]:
        """Stream every satellite band."""
        return self.get_paginated(self.path_to_url("satellite_bands"), Band)

    async def get_satellite_band_by_id(self, band_id: int) -> Container[Band]:
        return await self.get_json_map(self.path_to_url(f"satellite_bands/{band_id}"), Band)

    async def get_satellite_band_by_name(self, name: str) -> Container[Band]:
        url = self.url_with_query("satellite_bands/search/findOneByName", {"name": name})
        return await self.get_json_map(url, Band)

    def get_satellite_bands_by_account_name(self, account_name: str) -> PaginatedStream[Container[Band]]:
        """Stream the satellite bands owned by the named account."""
        url = self.url_with_query(
            "satellite_bands/search/findAllByAccountName", {"accountName": account_name}
        )
        return self.get_paginated(url, Band)

    async def delete_band_details(self, band_id: int) -> None:
        """Delete the satellite band with the given id."""
        await self._delete_path(f"satellite_bands/{band_id}")

    # =========================================================================
    # Satellite Configurations
    # =========================================================================

    def get_satellite_configurations(self) -> PaginatedStream[Container[SatelliteConfiguration]]:
        """Stream every satellite configuration."""
        return self.get_paginated(self.path_to_url("satellite_configurations"), SatelliteConfiguration)

    async def get_satellite_configuration_by_id(
        self, configuration_id: int
    ) -> Container[SatelliteConfiguration]:
        url = self.path_to_url(f"satellite_configurations/{configuration_id}")
        return await self.get_json_map(url, SatelliteConfiguration)

    async def get_satellite_configuration_by_name(
        self, name: str
    ) -> Container[SatelliteConfiguration]:
        url = self.url_with_query("satellite_configurations/search/findOneByName", {"name": name})
        return await self.get_json_map(url, SatelliteConfiguration)

    def get_satellite_configurations_by_account_name(
        self, account_name: str
    ) -> PaginatedStream[Container[SatelliteConfiguration]]:
        url = self.url_with_query(
            "satellite_configurations/search/findAllByAccountName", {"accountName": account_name}
        )
        return self.get_paginated(url, SatelliteConfiguration)

    async def delete_satellite_configuration(self, configuration_id: int) -> None:
        await self._delete_path(f"satellite_configurations/{configuration_id}")

    # =========================================================================
    # Satellites
    # =========================================================================

    def get_satellites(self) -> PaginatedStream[Container[Satellite]]:
        """Stream every satellite."""
        return self.get_paginated(self.path_to_url("satellites"), Satellite)

    async def get_satellite_by_id(self, satellite_id: int) -> Container[Satellite]:
        """Fetch the satellite with the given id.

        Args:
            satellite_id: Freedom id of the satellite (not the NORAD id)

        Returns:
            The satellite, wrapped in the client's container

        Raises:
            NotFoundError: If no satellite has that id
        """
        return await self.get_json_map(self.path_to_url(f"satellites/{satellite_id}"), Satellite)

    async def get_satellite_by_name(self, name: str) -> Container[Satellite]:
        url = self.url_with_query("satellites/findOneByName", {"name": name})
        return await self.get_json_map(url, Satellite)

    async def delete_satellite(self, satellite_id: int) -> None:
        await self._delete_path(f"satellites/{satellite_id}")

    # =========================================================================
    # Sites
    # =========================================================================

    def get_sites(self) -> PaginatedStream[Container[Site]]:
        """Stream every ground station site."""
        return self.get_paginated(self.path_to_url("sites"), Site)

    async def get_site_by_id(self, site_id: int) -> Container[Site]:
        return await self.get_json_map(self.path_to_url(f"sites/{site_id}"), Site)

    async def get_site_by_name(self, name: str) -> Container[Site]:
        url = self.url_with_query("sites/search/findOneByName", {"name": name})
        return await self.get_json_map(url, Site)

    def get_site_configurations(self) -> PaginatedStream[Container[SiteConfiguration]]:
        """Stream every site configuration."""
        return self.get_paginated(self.path_to_url("configurations"), SiteConfiguration)

    async def get_site_configuration_by_id(self, configuration_id: int) -> Container[SiteConfiguration]:
        url = self.path_to_url(f"configurations/{configuration_id}")
        return await self.get_json_map(url, SiteConfiguration)

    async def get_site_configuration_by_name(self, name: str) -> Container[SiteConfiguration]:
        url = self.url_with_query("configurations/search/findOneByName", {"name": name})
        return await self.get_json_map(url, SiteConfiguration)

    # =========================================================================
    # Task Requests
    # =========================================================================

    async def get_request_by_id(self, request_id: int) -> Container[TaskRequest]:
        """Fetch the task request with the given id."""
        return await self.get_json_map(self.path_to_url(f"requests/{request_id}"), TaskRequest)

    def get_requests(self) -> PaginatedStream[Container[TaskRequest]]:
        """Stream every task request."""
        return self.get_paginated(self.path_to_url("requests/search/findAll"), TaskRequest)

    async def get_requests_by_target_date_between(
        self, start: datetime, end: datetime
    ) -> Container[List[TaskRequest]]:
        """Fetch the task requests whose target date falls in ``[start, end]``.

        Raises:
            TimeFormatError: If ``start`` or ``end`` is not a datetime
        """
        url = self.url_with_query(
            "requests/search/findAllByTargetDateBetween", self._window(start, end)
        )
        return await self.get_json_map(url, List[TaskRequest])

    def get_requests_by_account_and_target_date_between(
        self, account_uri: str, start: datetime, end: datetime
    ) -> PaginatedStream[Container[TaskRequest]]:
        """Stream the account's task requests targeted inside the window.

        Args:
            account_uri: Link of the account (its ``self`` link)
            start: Window start
            end: Window end
        """
        params = {"account": account_uri, **self._window(start, end)}
        url = self.url_with_query("requests/search/findAllByAccountAndTargetDateBetween", params)
        return self.get_paginated(url, TaskRequest)

    def get_requests_by_account_and_upcoming_today(self) -> PaginatedStream[Container[TaskRequest]]:
        """Stream the caller's account task requests whose pass happens later today."""
        url = self.path_to_url("requests/search/findByAccountUpcomingToday")
        return self.get_paginated(url, TaskRequest)

    def get_requests_by_configuration(
        self, configuration_uri: str
    ) -> PaginatedStream[Container[TaskRequest]]:
        """Stream the task requests using a site configuration, oldest first."""
        url = self.url_with_query(
            "requests/search/findAllByConfigurationOrderByCreatedAsc",
            {"configuration": configuration_uri},
        )
        return self.get_paginated(url, TaskRequest)

    async def get_requests_by_configuration_and_satellite_names_and_target_date_between(
        self,
        configuration_uri: str,
        satellite_names: Iterable[str],
        start: datetime,
        end: datetime,
    ) -> Container[List[TaskRequest]]:
        params = {
            "configuration": configuration_uri,
            "satelliteNames": list_to_string(satellite_names),
            **self._window(start, end),
        }
        url = self.url_with_query(
            "requests/search/findAllByConfigurationAndSatelliteNamesAndTargetDateBetween", params
        )
        return await self.get_embedded(url, TaskRequest)

    async def get_requests_by_configuration_and_target_date_between(
        self, configuration_uri: str, start: datetime, end: datetime
    ) -> Container[List[TaskRequest]]:
        params = {"configuration": configuration_uri, **self._window(start, end)}
        url = self.url_with_query(
            "requests/search/findAllByConfigurationAndTargetDateBetween", params
        )
        return await self.get_embedded(url, TaskRequest)

    async def get_requests_by_ids(self, ids: Iterable[Any]) -> Container[List[TaskRequest]]:
        """Fetch the task requests with the given ids, in one request."""
        url = self.url_with_query("requests/search/findAllByIds", {"ids": list_to_string(ids)})
        return await self.get_embedded(url, TaskRequest)

    def get_requests_by_overlapping_public(
        self, start: datetime, end: datetime
    ) -> PaginatedStream[Container[TaskRequest]]:
        """Stream the public task requests overlapping the window."""
        url = self.url_with_query(
            "requests/search/findAllByOverlappingPublic", self._window(start, end)
        )
        return self.get_paginated(url, TaskRequest)

    def get_requests_by_satellite_name(self, name: str) -> PaginatedStream[Container[TaskRequest]]:
        url = self.url_with_query("requests/search/findBySatelliteName", {"name": name})
        return self.get_paginated(url, TaskRequest)

    async def get_requests_by_satellite_name_and_target_date_between(
        self, name: str, start: datetime, end: datetime
    ) -> Container[List[TaskRequest]]:
        params = {"name": name, **self._window(start, end)}
        url = self.url_with_query(
            "requests/search/findAllBySatelliteNameAndTargetDateBetween", params
        )
        return await self.get_embedded(url, TaskRequest)

    def get_requests_by_status(
        self, status: Union[str, TaskStatus]
    ) -> PaginatedStream[Container[TaskRequest]]:
        """Stream the task requests in the given status.

        Raises:
            ValidationError: If ``status`` is not a known task status
        """
        status = TaskStatus.parse(status)
        url = self.url_with_query("requests/search/findByStatus", {"status": status.value})
        return self.get_paginated(url, TaskRequest)

    def get_requests_by_status_and_account_and_target_date_between(
        self,
        status: Union[str, TaskStatus],
        account_uri: str,
        start: datetime,
        end: datetime,
    ) -> PaginatedStream[Container[TaskRequest]]:
        status = TaskStatus.parse(status)
        params = {"status": status.value, "account": account_uri, **self._window(start, end)}
        url = self.url_with_query(
            "requests/search/findAllByStatusAndAccountAndTargetDateBetween", params
        )
        return self.get_paginated(url, TaskRequest)

    async def get_requests_by_type_and_target_date_between(
        self, task_type: Union[str, TaskType], start: datetime, end: datetime
    ) -> Container[List[TaskRequest]]:
        """Fetch the task requests of one type targeted inside the window.

        Raises:
            ValidationError: If ``task_type`` is not a known task type
        """
        task_type = TaskType.parse(task_type)
        params = {"type": task_type.value, **self._window(start, end)}
        url = self.url_with_query("requests/search/findAllByTypeAndTargetDateBetween", params)
        return await self.get_embedded(url, TaskRequest)

    async def get_requests_passed_today(self) -> Container[List[TaskRequest]]:
        """Fetch the task requests whose pass already happened today."""
        url = self.path_to_url("requests/search/findAllPassedToday")
        return await self.get_embedded(url, TaskRequest)

    async def get_requests_upcoming_today(self) -> Container[List[TaskRequest]]:
        """Fetch the task requests whose pass happens later today."""
        url = self.path_to_url("requests/search/findAllUpcomingToday")
        return await self.get_embedded(url, TaskRequest)

    async def delete_task_request(self, request_id: int) -> None:
        """Delete (cancel) the task request with the given id."""
        await self._delete_path(f"requests/{request_id}")

    # =========================================================================
    # Tasks
    # =========================================================================

    async def get_task_by_id(self, task_id: int) -> Container[Task]:
        return await self.get_json_map(self.path_to_url(f"tasks/{task_id}"), Task)

    async def get_tasks_by_account_and_pass_overlapping(
        self, account_uri: str, start: datetime, end: datetime
    ) -> Container[List[Task]]:
        """Fetch the account's tasks whose pass overlaps the window."""
        params = {"account": account_uri, **self._window(start, end)}
        url = self.url_with_query("tasks/search/findByAccountAndPassOverlapping", params)
        return await self.get_embedded(url, Task)

    async def get_tasks_by_account_and_satellite_and_band_and_pass_overlapping(
        self,
        account_uri: str,
        satellite_config_uri: str,
        band: str,
        start: datetime,
        end: datetime,
    ) -> Container[List[Task]]:
        params = {
            "account": account_uri,
            "satellite": satellite_config_uri,
            "band": band,
            **self._window(start, end),
        }
        url = self.url_with_query(
            "tasks/search/findByAccountAndSatelliteAndBandAndPassOverlapping", params
        )
        return await self.get_embedded(url, Task)

    async def get_tasks_by_account_and_site_configuration_and_band_and_pass_overlapping(
        self,
        account_uri: str,
        site_config_uri: str,
        band: str,
        start: datetime,
        end: datetime,
    ) -> Container[List[Task]]:
        params = {
            "account": account_uri,
            "siteConfig": site_config_uri,
            "band": band,
            **self._window(start, end),
        }
        url = self.url_with_query(
            "tasks/search/findByAccountAndSiteConfigurationAndBandAndPassOverlapping", params
        )
        return await self.get_embedded(url, Task)

    async def get_tasks_by_pass_window(self, start: datetime, end: datetime) -> Container[List[Task]]:
        """Fetch the tasks lying entirely inside the window, earliest first.

        Unlike ``get_tasks_by_pass_overlapping`` this excludes tasks that only
        partially overlap the window.
        """
        url = self.url_with_query(
            "tasks/search/findByStartBetweenOrderByStartAsc", self._window(start, end)
        )
        return await self.get_embedded(url, Task)

    def get_tasks_by_pass_overlapping(
        self, start: datetime, end: datetime
    ) -> PaginatedStream[Container[Task]]:
        """Stream the tasks overlapping the window, including partial overlaps."""
        url = self.url_with_query("tasks/search/findByOverlapping", self._window(start, end))
        return self.get_paginated(url, Task)

    async def get_tasks_passed_today(self) -> Container[List[Task]]:
        return await self.get_embedded(self.path_to_url("tasks/search/findAllPassedToday"), Task)

    async def get_tasks_upcoming_today(self) -> Container[List[Task]]:
        return await self.get_embedded(self.path_to_url("tasks/search/findAllUpcomingToday"), Task)

    # =========================================================================
    # Users and Overrides
    # =========================================================================

    def get_users(self) -> PaginatedStream[Container[User]]:
        """Stream every user."""
        return self.get_paginated(self.path_to_url("users"), User)

    async def delete_user(self, user_id: int) -> None:
        await self._delete_path(f"users/{user_id}")

    async def delete_override(self, override_id: int) -> None:
        await self._delete_path(f"overrides/{override_id}")

    # =========================================================================
    # Files, Tokens and Bundles
    # =========================================================================

    async def get_file_by_task_id_and_name(self, task_id: int, file_name: str) -> bytes:
        """Download a file produced by a task.

        Returns:
            The raw file content
        """
        url = self.path_to_url(f"downloads/{task_id}/{file_name}")
        body, status = await self.get(url)
        error_on_non_success(status, body)
        return body

    async def new_token_by_site_configuration_id(
        self, band_id: int, site_configuration_id: int
    ) -> str:
        """Request an FPS token for a band on a site configuration."""
        payload = {
            "band": self.path_to_url(f"satellite_bands/{band_id}").path,
            "configuration": self.path_to_url(f"configurations/{site_configuration_id}").path,
        }
        return await self._new_token(payload)

    async def new_token_by_satellite_id(self, band_id: int, satellite_id: int) -> str:
        """Request an FPS token for a band on a satellite.

        Example:
            >>> token = await client.new_token_by_satellite_id(42, 101)
        """
        payload = {
            "band": self.path_to_url(f"satellite_bands/{band_id}").path,
            "satellite": self.path_to_url(f"satellites/{satellite_id}").path,
        }
        return await self._new_token(payload)

    async def _new_token(self, payload: Dict[str, str]) -> str:
        response = await self.post_json_map(self.path_to_url("fps"), payload, dict)
        token: Optional[Any] = response.value.get("token")
        if token is None:
            raise ResponseError("Missing token field")
        if not isinstance(token, str):
            raise ResponseError("Invalid type for token")
        return token

    async def get_fps_task_bundle(self, start: datetime, end: datetime) -> Container[List[Any]]:
        """Fetch the FPS task bundles overlapping the window, as raw JSON.

        Intended for FPS and gateway integrations rather than customers.
        """
        url = self.url_with_query("fpstaskbundle/search/findByOverlapping", self._window(start, end))
        return await self.get_json_map(url, list)
