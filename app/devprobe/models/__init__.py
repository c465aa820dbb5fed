"""Data models for devprobe.

This module exports the core data structures used throughout the application.
"""

from devprobe.models.device import (
    DeviceId,
    DeviceNode,
    MountBoundary,
    MountEntry,
    NodeKind,
    PoolReference,
)

__all__ = [
    "DeviceId",
    "DeviceNode",
    "MountBoundary",
    "MountEntry",
    "NodeKind",
    "PoolReference",
]
