"""Display ordering for device ids.

Devices sharing their first three colon-delimited segments (the prefix
group) sort next to each other; ties within a group break on the full id.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_GROUP_SEGMENTS = 3


def prefix_group(device_id: str) -> str:
    """Return the leading three ``:``-delimited segments of *device_id*.

    >>> prefix_group("AA:BB:CC:01")
    'AA:BB:CC'
    >>> prefix_group("AA:BB")
    'AA:BB'
    """
    return ":".join(device_id.split(":")[:_GROUP_SEGMENTS])


def order_devices(ids: Iterable[str]) -> list[str]:
    """Sort *ids* by prefix group, then by full id."""
    return sorted(set(ids), key=lambda device_id: (prefix_group(device_id), device_id))
