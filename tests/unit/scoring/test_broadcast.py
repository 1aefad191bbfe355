"""Unit tests for broadcast handle helpers."""

from __future__ import annotations

from scoring.broadcast import LocalBroadcast, read_broadcast_value


def test_local_broadcast_returns_shared_payload_without_copying() -> None:
    """Local handles should hand out the same object to every reader."""
    payload = [1.0, 2.0]
    handle = LocalBroadcast(payload)

    assert handle.value() is payload and read_broadcast_value(handle) is payload


def test_read_broadcast_value_supports_attribute_handles() -> None:
    """Attribute-style handles should be read directly."""

    class _SparkStyleBroadcast:
        value = (3.0, 4.0)

    assert read_broadcast_value(_SparkStyleBroadcast()) == (3.0, 4.0)
