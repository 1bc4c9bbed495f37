"""
Freedom API - Pagination

Collections are served one page at a time. Each page carries its items and a
``next`` link to the following page; the last page has no ``next`` link.
``PaginatedStream`` turns that chain into one lazy async iterator.

Example:
    >>> async for satellite in client.get_satellites():
    ...     if isinstance(satellite, PaginationItemError):
    ...         continue  # one malformed item, the stream goes on
    ...     print(satellite.name)
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Generic, List, Optional, TypeVar, Union, TYPE_CHECKING

import httpx

from .errors import DeserializationError, InvalidUriError, PaginationItemError, PaginationLinkError
from .utils import parse_links

if TYPE_CHECKING:
    from .api import Api

logger = logging.getLogger(__name__)

C = TypeVar("C")


@dataclass
class Page:
    """One decoded page of a paginated collection.

    Attributes:
        items: Raw (undecoded) items, in server order
        links: Relation name to URL, e.g. ``next``
    """

    items: List[Any] = field(default_factory=list)
    links: Dict[str, str] = field(default_factory=dict)

    @property
    def next_link(self) -> Optional[str]:
        return self.links.get("next")

    @classmethod
    def from_dict(cls, data: Any) -> "Page":
        """Decode a page.

        Accepts ``{"items": [...], "links": {...}}`` and the HAL form
        ``{"_embedded": {"<relation>": [...]}, "_links": {...}}``.

        Raises:
            DeserializationError: If the payload is not a page
        """
        if not isinstance(data, dict):
            raise DeserializationError(f"expected a page object, got {type(data).__name__}")

        if "items" in data:
            items = data["items"]
            if not isinstance(items, list):
                raise DeserializationError("page 'items' is not a list")
        elif "_embedded" in data:
            embedded = data["_embedded"]
            if not isinstance(embedded, dict):
                raise DeserializationError("page '_embedded' is not an object")
            items = []
            for value in embedded.values():
                if isinstance(value, list):
                    items.extend(value)
        else:
            items = []

        return cls(items=list(items), links=parse_links(data))


class PaginatedStream(Generic[C]):
    """Lazy async iterator over every item of a paginated collection.

    Pages are fetched strictly one after the other and only when the consumer
    has used up the items of the previous page. For each raw item the stream
    yields either a container (``client.container``) of the decoded value or,
    when that item cannot be decoded, a ``PaginationItemError`` instance; a
    bad item never ends the stream.

    A failure to fetch or decode a page, or a malformed ``next`` link, is
    raised from the iterator once every item of the earlier pages has been
    yielded, and ends the stream.
    """

    def __init__(self, client: "Api", url: Union[str, httpx.URL], value_type: Any):
        self._client = client
        self._value_type = value_type
        self._buffer: Deque[Any] = deque()
        # an unresolved link string, a resolved URL, or None once exhausted
        self._next: Optional[Union[str, httpx.URL]] = httpx.URL(url) if isinstance(url, str) else url
        self._closed = False
        self.pages_fetched = 0

    def __aiter__(self) -> "PaginatedStream[C]":
        return self

    async def __anext__(self) -> Union[C, PaginationItemError]:
        while not self._buffer:
            if self._closed or self._next is None:
                raise StopAsyncIteration
            await self._fetch_next_page()

        raw = self._buffer.popleft()
        try:
            return self._client.container.decode(self._value_type, raw)
        except DeserializationError as e:
            logger.debug("Skipping undecodable paginated item: %s", e.reason)
            return PaginationItemError(e.reason, item=raw)

    async def _fetch_next_page(self) -> None:
        target = self._next
        # cleared first so any failure below is terminal
        self._next = None

        if isinstance(target, str):
            try:
                url = self._client.resolve_link(target)
            except InvalidUriError as e:
                self._closed = True
                raise PaginationLinkError(target, e.message) from e
        else:
            url = target

        try:
            data = await self._client.get_json(url)
            page = Page.from_dict(data)
        except Exception:
            self._closed = True
            raise

        self.pages_fetched += 1
        logger.debug("Fetched page %d (%d items) from %s", self.pages_fetched, len(page.items), url)
        self._buffer.extend(page.items)
        self._next = page.next_link

    async def aclose(self) -> None:
        """Stop the stream; no further pages are fetched."""
        self._closed = True
        self._buffer.clear()
        self._next = None

    async def collect(self) -> List[Union[C, PaginationItemError]]:
        """Drain the stream into a list."""
        return [item async for item in self]

    def __repr__(self) -> str:
        state = "closed" if self._closed or (self._next is None and not self._buffer) else "open"
        return f"PaginatedStream({state}, pages_fetched={self.pages_fetched})"
