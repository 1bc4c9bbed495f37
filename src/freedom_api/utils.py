"""
Freedom API - Utilities

Small formatting helpers shared by the request surface and the models.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping

from .errors import InvalidIdError, MissingUriError, TimeFormatError


def list_to_string(values: Iterable[Any]) -> str:
    """Join values into the comma separated form used by list query params."""
    return ",".join(str(v) for v in values)


def format_datetime(value: Any) -> str:
    """Format a datetime as ISO 8601.

    Naive datetimes are assumed to be UTC, UTC is rendered with a ``Z``
    suffix.

    Raises:
        TimeFormatError: If ``value`` is not a datetime
    """
    if not isinstance(value, datetime):
        raise TimeFormatError(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    formatted = value.isoformat()
    if formatted.endswith("+00:00"):
        formatted = formatted[: -len("+00:00")] + "Z"
    return formatted


def parse_datetime(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as sent by the server.

    Raises:
        TypeError: If ``value`` is not a string
        ValueError: If ``value`` is not ISO 8601
    """
    if not isinstance(value, str):
        raise TypeError(f"expected an ISO 8601 string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def id_from_links(links: Mapping[str, str], relation: str = "self") -> int:
    """Extract the integer id from the last path segment of a link.

    Raises:
        MissingUriError: If ``relation`` is not present
        InvalidIdError: If the last segment is not an integer
    """
    link = links.get(relation)
    if link is None:
        raise MissingUriError(relation)

    path = link.split("?", 1)[0].split("#", 1)[0].rstrip("/")
    last = path.rsplit("/", 1)[-1]
    try:
        return int(last)
    except ValueError:
        raise InvalidIdError(link)


def parse_links(data: Mapping[str, Any]) -> Dict[str, str]:
    """Read relation links from a payload.

    Accepts the HAL shape (``"_links": {"next": {"href": url}}``), the flat
    shape (``"links": {"next": url}``) and a list of ``{"rel", "href"}``.
    """
    raw = data.get("_links")
    if raw is None:
        raw = data.get("links") or {}
    if isinstance(raw, list):
        raw = {entry["rel"]: entry.get("href") for entry in raw if isinstance(entry, dict) and "rel" in entry}
    if not isinstance(raw, dict):
        return {}
    links: Dict[str, str] = {}
    for relation, target in raw.items():
        if isinstance(target, list):
            target = target[0] if target else None
        if isinstance(target, dict):
            target = target.get("href")
        if isinstance(target, str):
            links[relation] = target
    return links


def format_links(links: Mapping[str, str]) -> Dict[str, Dict[str, str]]:
    """Render links in the HAL ``_links`` shape."""
    return {relation: {"href": href} for relation, href in links.items()}
