"""Root device resolution and mount boundary walking."""

from devprobe.probe.boundary import (
    MountBoundaryWalker,
    make_path_relative_to_root,
    split_at_mount_boundary,
)
from devprobe.probe.driver import RootResolver, resolve_root_devices

__all__ = [
    "MountBoundaryWalker",
    "RootResolver",
    "make_path_relative_to_root",
    "resolve_root_devices",
    "split_at_mount_boundary",
]
