"""
Freedom API - Containers

The request surface is generic over "containers". Each client class picks the
container its results are wrapped in: the plain ``Client`` hands out ``Inner``
(the caller owns the value outright) while the ``CachingClient`` hands out
``Shared`` (a reference-counted handle, so re-serving a value never forces a
full copy per consumer).

For read-only use the difference can be ignored: both containers delegate
attribute access, equality, ``len``, iteration and indexing to the held
value. Call ``into_inner()`` to get the value itself.

Example:
    >>> sat = await client.get_satellite_by_id(710)
    >>> sat.name                # transparent read access
    'FooBar 6'
    >>> owned = sat.into_inner()  # plain Satellite
"""

import abc
import copy
import weakref
from typing import Any, Generic, List, Protocol, TypeVar, get_args, get_origin, runtime_checkable

from .errors import DeserializationError, FreedomError


T = TypeVar("T")


@runtime_checkable
class Value(Protocol):
    """Contract for payload types returned by the service.

    Values are built from decoded JSON with ``from_dict`` and must support
    equality, ``repr`` and ``copy.deepcopy``. Dataclasses in ``types.py``
    satisfy it.
    """

    @classmethod
    def from_dict(cls, data: Any) -> Any:
        ...


_PLAIN_JSON_TYPES = (dict, list, str, int, float, bool)


def decode_value(value_type: Any, data: Any) -> Any:
    """Decode raw JSON into ``value_type``.

    ``value_type`` may be a class with ``from_dict``, ``List[Model]``, a plain
    JSON type (``dict``, ``list``, ``str``, ...) or ``Any``/``object`` for raw
    JSON.

    Raises:
        DeserializationError: If ``data`` does not match the expected shape
    """
    if value_type is Any or value_type is object:
        return data

    origin = get_origin(value_type)
    if origin is list or origin is List:
        args = get_args(value_type)
        item_type = args[0] if args else Any
        if not isinstance(data, list):
            raise DeserializationError(
                f"expected a list for {value_type}, got {type(data).__name__}"
            )
        return [decode_value(item_type, item) for item in data]

    if value_type in _PLAIN_JSON_TYPES:
        if not isinstance(data, value_type):
            raise DeserializationError(
                f"expected {value_type.__name__}, got {type(data).__name__}"
            )
        return data

    from_dict = getattr(value_type, "from_dict", None)
    if from_dict is None:
        raise TypeError(f"{value_type!r} cannot be decoded: it has no from_dict()")
    if not isinstance(data, dict):
        raise DeserializationError(
            f"expected an object for {value_type.__name__}, got {type(data).__name__}"
        )
    try:
        return from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise DeserializationError(
            f"{value_type.__name__}: {type(e).__name__}: {e}"
        ) from e
    except FreedomError as e:
        if isinstance(e, DeserializationError):
            raise
        raise DeserializationError(f"{value_type.__name__}: {e}") from e


class Container(Generic[T], abc.ABC):
    """Read-only wrapper around a value.

    Subclasses store the value and implement ``into_inner``. The wrapped value
    is fixed at construction.
    """

    __slots__ = ()

    @property
    @abc.abstractmethod
    def value(self) -> T:
        """The wrapped value (borrowed, do not mutate)."""

    @abc.abstractmethod
    def into_inner(self) -> T:
        """Convert into an owned value."""

    @classmethod
    def decode(cls, value_type: Any, data: Any) -> "Container[Any]":
        """Decode raw JSON and wrap the result in this container type."""
        return cls(decode_value(value_type, data))

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.value, name)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Container):
            other = other.value
        return self.value == other

    def __hash__(self) -> int:
        return hash(self.value)

    def __len__(self) -> int:
        return len(self.value)

    def __iter__(self):
        return iter(self.value)

    def __getitem__(self, key: Any) -> Any:
        return self.value[key]

    def __contains__(self, item: Any) -> bool:
        return item in self.value

    def __bool__(self) -> bool:
        return bool(self.value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.value!r})"


class Inner(Container[T]):
    """Owned container: the caller is the only holder of the value.

    ``into_inner()`` hands back the held object itself, no copy is made.
    """

    __slots__ = ("_value",)

    def __init__(self, value: T):
        object.__setattr__(self, "_value", value)

    @property
    def value(self) -> T:
        return self._value

    def into_inner(self) -> T:
        return self._value

    def __copy__(self) -> "Inner[T]":
        return Inner(self._value)

    def __deepcopy__(self, memo: dict) -> "Inner[T]":
        return Inner(copy.deepcopy(self._value, memo))

    def __reduce__(self):
        return (Inner, (self._value,))


class _SharedCell:
    """Allocation shared by every handle of one ``Shared`` value."""

    __slots__ = ("value", "handles")

    def __init__(self, value: Any):
        self.value = value
        self.handles = 0

    def acquire(self, handle: "Shared[Any]") -> weakref.finalize:
        self.handles += 1
        return weakref.finalize(handle, self.release)

    def release(self) -> None:
        self.handles -= 1


class Shared(Container[T]):
    """Reference-counted container.

    ``clone()`` produces another handle to the same value without copying it.
    ``into_inner()`` returns the value itself when this is the only live
    handle and a deep copy otherwise, so the other holders never observe a
    change.
    """

    __slots__ = ("_cell", "_finalizer", "__weakref__")

    def __init__(self, value: T):
        self._attach(_SharedCell(value))

    def _attach(self, cell: _SharedCell) -> None:
        object.__setattr__(self, "_cell", cell)
        object.__setattr__(self, "_finalizer", cell.acquire(self))

    @property
    def value(self) -> T:
        return self._cell.value

    @property
    def handle_count(self) -> int:
        """Number of live handles sharing the value."""
        return self._cell.handles

    def clone(self) -> "Shared[T]":
        """Return a new handle to the same value (no copy)."""
        other = object.__new__(Shared)
        other._attach(self._cell)
        return other

    def into_inner(self) -> T:
        cell = self._cell
        if not self._finalizer.alive:
            return copy.deepcopy(cell.value)
        if cell.handles == 1:
            value = cell.value
        else:
            value = copy.deepcopy(cell.value)
        # this handle is consumed; it no longer counts as a holder
        self._finalizer()
        return value

    def __copy__(self) -> "Shared[T]":
        return self.clone()

    def __deepcopy__(self, memo: dict) -> "Shared[T]":
        return Shared(copy.deepcopy(self._cell.value, memo))

    def __reduce__(self):
        return (Shared, (self._cell.value,))
