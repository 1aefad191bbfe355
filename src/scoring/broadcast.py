"""Read-only broadcast value handles.

Workers read the shared parameter vector through a handle rather than
receiving it as a plain argument. Spark broadcasts expose ``value`` as
an attribute, other runtimes expose ``value()`` as a method; both are
accepted.
"""

from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar

_ValueT = TypeVar("_ValueT")
_ValueT_co = TypeVar("_ValueT_co", covariant=True)


class BroadcastHandle(Protocol[_ValueT_co]):
    """Handle exposing a value shared read-only by all tasks on a worker."""

    def value(self) -> _ValueT_co:
        """Return the shared value without copying it."""
        ...


class LocalBroadcast(Generic[_ValueT]):
    """In-process broadcast handle, used by drivers and tests."""

    def __init__(self, payload: _ValueT) -> None:
        self._payload = payload

    def value(self) -> _ValueT:
        """Return the shared payload."""
        return self._payload


def read_broadcast_value(handle: Any) -> Any:
    """Read the shared value from a method-style or attribute-style handle."""
    value = getattr(handle, "value")
    if callable(value):
        return value()
    return value
