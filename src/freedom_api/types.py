"""
Freedom API - Common Types

Payload models returned by the Freedom API, plus HATEOAS navigation.

Models are plain dataclasses with ``from_dict``/``to_dict``. Field names are
snake_case in Python and camelCase on the wire. Every model keeps the
``_links`` map of its payload so related resources can be followed with a
client:

    >>> request = await client.get_request_by_id(42)
    >>> site = await request.get_site(client)

Design decisions:
- Timestamps are timezone-aware datetimes (UTC when the server omits it)
- Only the fields the client relies on are modelled; the wire schema is
  owned by the server
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .errors import ValidationError
from .utils import format_datetime, format_links, id_from_links, parse_datetime, parse_links

if TYPE_CHECKING:
    from .api import Api
    from .container import Container


class TaskType(str, Enum):
    """Scheduling constraint of a task request."""

    EXACT = "EXACT"
    BEFORE = "BEFORE"
    AFTER = "AFTER"
    AROUND = "AROUND"
    TEST = "TEST"

    @classmethod
    def parse(cls, value: Any) -> "TaskType":
        """Parse a task type, case-insensitively.

        Raises:
            ValidationError: If the value is not a known task type
        """
        return _parse_enum(cls, "type", value)


class TaskStatus(str, Enum):
    """Lifecycle status of a task request."""

    REQUESTED = "REQUESTED"
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus":
        """Parse a task status, case-insensitively.

        Raises:
            ValidationError: If the value is not a known status
        """
        return _parse_enum(cls, "status", value)


def _parse_enum(enum_cls, field_name: str, value: Any):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            pass
    allowed = ", ".join(member.value for member in enum_cls)
    raise ValidationError(field_name, f"{value!r} is not one of {allowed}")


# =========================================================================
# Wire helpers
# =========================================================================


def _unwrap_content(data: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten ``{"content": {...}, "_links": {...}}`` wrappers.

    Some endpoints wrap the entity in ``content`` and keep the links on the
    outside.
    """
    content = data.get("content")
    if isinstance(content, dict):
        merged = dict(content)
        if "_links" in data or "links" in data:
            merged["_links"] = format_links(parse_links(data))
        return merged
    return data


def _opt_time(data: Dict[str, Any], key: str) -> Optional[datetime]:
    value = data.get(key)
    return parse_datetime(value) if value else None


def _time(value: Optional[datetime]) -> Optional[str]:
    return format_datetime(value) if value is not None else None


class _Linked:
    """HATEOAS navigation shared by every model.

    Subclasses are dataclasses with a ``links`` field.
    """

    links: Dict[str, str]

    def get_id(self) -> int:
        """Id of this resource, parsed from its ``self`` link.

        Raises:
            MissingUriError: If the payload has no ``self`` link
            InvalidIdError: If the link does not end with an integer id
        """
        return id_from_links(self.links, "self")

    async def _follow(self, client: "Api", relation: str, value_type: Any) -> "Container[Any]":
        return await client.get_link(self.links, relation, value_type)

    async def _follow_embedded(
        self, client: "Api", relation: str, value_type: Any
    ) -> "Container[List[Any]]":
        url = client.link_url(self.links, relation)
        return await client.get_embedded(url, value_type)


@dataclass
class TimeRange:
    """Time window for search queries.

    Attributes:
        start: Start time (naive values are taken as UTC)
        end: End time (naive values are taken as UTC)

    Example:
        >>> from datetime import datetime, timezone, timedelta
        >>> now = datetime.now(timezone.utc)
        >>> window = TimeRange(start=now, end=now + timedelta(hours=24))
        >>> tasks = await client.get_tasks_by_pass_window(*window)
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None:
            self.start = self.start.replace(tzinfo=timezone.utc)
        if self.end.tzinfo is None:
            self.end = self.end.replace(tzinfo=timezone.utc)
        self.validate()

    def validate(self) -> None:
        """Validate time range."""
        if self.end <= self.start:
            raise ValidationError("end", "End time must be after start time")

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    def __iter__(self):
        return iter((self.start, self.end))

    def to_dict(self) -> Dict[str, str]:
        """Convert to the ``start``/``end`` query parameters."""
        return {"start": format_datetime(self.start), "end": format_datetime(self.end)}


# =========================================================================
# Models
# =========================================================================


@dataclass
class Location:
    """Geographic location of a ground station.

    Attributes:
        latitude: Latitude in degrees (-90 to 90)
        longitude: Longitude in degrees (-180 to 180)
        elevation: Elevation above sea level in meters
    """

    latitude: float
    longitude: float
    elevation: float = 0.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Validate location parameters."""
        if not -90 <= self.latitude <= 90:
            raise ValidationError("latitude", "Must be between -90 and 90 degrees")
        if not -180 <= self.longitude <= 180:
            raise ValidationError("longitude", "Must be between -180 and 180 degrees")

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "elevation": self.elevation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        """Create Location from dictionary."""
        return cls(
            latitude=data["latitude"],
            longitude=data["longitude"],
            elevation=data.get("elevation", 0.0),
        )


@dataclass
class TwoLineElement:
    """NORAD two-line element set."""

    line1: str
    line2: str

    def to_dict(self) -> Dict[str, str]:
        return {"line1": self.line1, "line2": self.line2}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TwoLineElement":
        return cls(line1=data["line1"], line2=data["line2"])


@dataclass
class Account(_Linked):
    """A customer account.

    Attributes:
        name: Unique account name
        external_id: Customer supplied identifier
        created: Creation time
        modified: Last modification time
        links: HATEOAS relation name to URL
    """

    name: str
    external_id: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    async def get_users(self, client: "Api") -> "Container[List[User]]":
        """Fetch the users belonging to this account."""
        return await self._follow_embedded(client, "users", User)

    async def get_satellites(self, client: "Api") -> "Container[List[Satellite]]":
        """Fetch the satellites owned by this account."""
        return await self._follow_embedded(client, "satellites", Satellite)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "externalId": self.external_id,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            external_id=data.get("externalId"),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class Band(_Linked):
    """Radio band details of a satellite.

    Attributes:
        name: Band name
        band_type: TRANSMIT, RECEIVE or another server defined type
        frequency_mghz: Center frequency in MHz
        default_band_width_mghz: Default bandwidth in MHz
    """

    name: str
    band_type: str
    frequency_mghz: float
    default_band_width_mghz: float
    modulation: Optional[str] = None
    eirp: Optional[float] = None
    gain: Optional[float] = None
    manual_transmit_control: bool = False
    account_name: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.band_type,
            "frequencyMghz": self.frequency_mghz,
            "defaultBandWidthMghz": self.default_band_width_mghz,
            "modulation": self.modulation,
            "eirp": self.eirp,
            "gain": self.gain,
            "manualTransmitControl": self.manual_transmit_control,
            "accountName": self.account_name,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Band":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            band_type=data["type"],
            frequency_mghz=float(data["frequencyMghz"]),
            default_band_width_mghz=float(data["defaultBandWidthMghz"]),
            modulation=data.get("modulation"),
            eirp=data.get("eirp"),
            gain=data.get("gain"),
            manual_transmit_control=bool(data.get("manualTransmitControl", False)),
            account_name=data.get("accountName"),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class Satellite(_Linked):
    """Satellite information.

    Attributes:
        name: Satellite name
        description: Free text description
        norad_cat_id: NORAD catalog number
        tle: Current two-line element set
        account_name: Owning account
        meta_data: Customer metadata
    """

    name: str
    description: str = ""
    norad_cat_id: Optional[int] = None
    tle: Optional[TwoLineElement] = None
    account_name: Optional[str] = None
    meta_data: Optional[Dict[str, str]] = None
    internal_meta_data: Optional[Dict[str, str]] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "noradCatId": self.norad_cat_id,
            "tle": self.tle.to_dict() if self.tle else None,
            "accountName": self.account_name,
            "metaData": self.meta_data,
            "internalMetaData": self.internal_meta_data,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Satellite":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            norad_cat_id=data.get("noradCatId"),
            tle=TwoLineElement.from_dict(data["tle"]) if data.get("tle") else None,
            account_name=data.get("accountName"),
            meta_data=data.get("metaData"),
            internal_meta_data=data.get("internalMetaData"),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class SatelliteConfiguration(_Linked):
    """Satellite configuration shared by one or more satellites."""

    name: str
    notes: Optional[str] = None
    account_name: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "notes": self.notes,
            "accountName": self.account_name,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SatelliteConfiguration":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            notes=data.get("notes"),
            account_name=data.get("accountName"),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class Site(_Linked):
    """A ground station site."""

    name: str
    description: str = ""
    location: Optional[Location] = None
    base_fps_address: Optional[str] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "location": self.location.to_dict() if self.location else None,
            "baseFpsAddress": self.base_fps_address,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Site":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            location=Location.from_dict(data["location"]) if data.get("location") else None,
            base_fps_address=data.get("baseFpsAddress"),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class SiteConfiguration(_Linked):
    """Hardware configuration of a site."""

    name: str
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteConfiguration":
        data = _unwrap_content(data)
        return cls(
            name=data["name"],
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class TaskRequest(_Linked):
    """A request to schedule a pass.

    Attributes:
        task_type: Scheduling constraint around ``target_date``
        target_date: Requested pass time
        duration: Requested pass length in seconds
        status: Current status, when reported
    """

    task_type: TaskType
    target_date: datetime
    duration: int
    status: Optional[TaskStatus] = None
    minimum_duration: Optional[int] = None
    hours_of_flex: Optional[int] = None
    transmitting: bool = False
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    async def get_task(self, client: "Api") -> "Container[Task]":
        """Fetch the task scheduled for this request."""
        return await self._follow(client, "task", Task)

    async def get_site(self, client: "Api") -> "Container[Site]":
        return await self._follow(client, "site", Site)

    async def get_target_bands(self, client: "Api") -> "Container[List[Band]]":
        return await self._follow_embedded(client, "targetBands", Band)

    async def get_config(self, client: "Api") -> "Container[SiteConfiguration]":
        return await self._follow(client, "configuration", SiteConfiguration)

    async def get_satellite(self, client: "Api") -> "Container[Satellite]":
        return await self._follow(client, "satellite", Satellite)

    async def get_user(self, client: "Api") -> "Container[User]":
        return await self._follow(client, "user", User)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.task_type.value,
            "targetDate": format_datetime(self.target_date),
            "duration": self.duration,
            "status": self.status.value if self.status else None,
            "minimumDuration": self.minimum_duration,
            "hoursOfFlex": self.hours_of_flex,
            "transmitting": self.transmitting,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskRequest":
        data = _unwrap_content(data)
        return cls(
            task_type=TaskType(data["type"]),
            target_date=parse_datetime(data["targetDate"]),
            duration=int(data["duration"]),
            status=TaskStatus(data["status"]) if data.get("status") else None,
            minimum_duration=data.get("minimumDuration"),
            hours_of_flex=data.get("hoursOfFlex"),
            transmitting=bool(data.get("transmitting", False)),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class Task(_Linked):
    """A scheduled pass."""

    task_type: TaskType
    start: datetime
    end: datetime
    status: Optional[TaskStatus] = None
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    async def get_task_request(self, client: "Api") -> "Container[TaskRequest]":
        """Fetch the request this task was scheduled from."""
        return await self._follow(client, "taskRequest", TaskRequest)

    async def get_config(self, client: "Api") -> "Container[SiteConfiguration]":
        return await self._follow(client, "config", SiteConfiguration)

    async def get_azel(self, client: "Api") -> "Container[Dict[str, Any]]":
        """Fetch the raw azimuth/elevation track of the pass."""
        return await self._follow(client, "azel", dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.task_type.value,
            "start": format_datetime(self.start),
            "end": format_datetime(self.end),
            "status": self.status.value if self.status else None,
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        data = _unwrap_content(data)
        return cls(
            task_type=TaskType(data["type"]),
            start=parse_datetime(data["start"]),
            end=parse_datetime(data["end"]),
            status=TaskStatus(data["status"]) if data.get("status") else None,
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )


@dataclass
class User(_Linked):
    """A user of an account."""

    email: str
    first_name: str = ""
    last_name: str = ""
    machine_service: bool = False
    roles: List[str] = field(default_factory=list)
    created: Optional[datetime] = None
    modified: Optional[datetime] = None
    links: Dict[str, str] = field(default_factory=dict)

    async def get_account(self, client: "Api") -> "Container[Account]":
        """Fetch the account this user belongs to."""
        return await self._follow(client, "account", Account)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "machineService": self.machine_service,
            "roles": list(self.roles),
            "created": _time(self.created),
            "modified": _time(self.modified),
            "_links": format_links(self.links),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        data = _unwrap_content(data)
        return cls(
            email=data["email"],
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            machine_service=bool(data.get("machineService", False)),
            roles=list(data.get("roles") or []),
            created=_opt_time(data, "created"),
            modified=_opt_time(data, "modified"),
            links=parse_links(data),
        )
