"""Volume backends for different storage stacks.

This module exports the backend classes that expand directories, pools
and logical volumes into device paths.
"""

from devprobe.backends.base import VolumeBackend
from devprobe.backends.lvm import LvmBackend
from devprobe.backends.mountinfo import MountTableBackend
from devprobe.backends.zfs import PoolBackend

__all__ = ["LvmBackend", "MountTableBackend", "PoolBackend", "VolumeBackend"]
