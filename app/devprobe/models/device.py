"""Device models for root device resolution.

This module defines the data structures passed between the device tree
scanner, the mount boundary walker and the volume backends.
"""

import os
import stat
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, slots=True)
class DeviceId:
    """Kernel identifier of a storage device (major/minor pair).

    Two filesystem objects report the same DeviceId iff the kernel
    considers them to live on the same device or volume.

    Attributes:
        major: Device major number.
        minor: Device minor number.
    """

    major: int
    minor: int

    def __post_init__(self) -> None:
        """Validate device numbers after initialization."""
        if self.major < 0 or self.minor < 0:
            msg = f"Device numbers must be non-negative, got {self.major}:{self.minor}"
            raise ValueError(msg)

    @classmethod
    def from_dev(cls, dev: int) -> "DeviceId":
        """Build a DeviceId from a raw dev_t (st_dev or st_rdev)."""
        return cls(major=os.major(dev), minor=os.minor(dev))

    @classmethod
    def parse(cls, value: str) -> "DeviceId":
        """Parse the ``major:minor`` notation used by the mount table.

        Args:
            value: String such as ``"8:1"``.

        Returns:
            Parsed DeviceId.

        Raises:
            ValueError: If the string is not two colon-separated integers.
        """
        major, sep, minor = value.strip().partition(":")
        if not sep or not major.isdigit() or not minor.isdigit():
            msg = f"Invalid device number: {value!r}"
            raise ValueError(msg)
        return cls(major=int(major), minor=int(minor))

    @property
    def raw(self) -> int:
        """Return the packed dev_t value."""
        return os.makedev(self.major, self.minor)

    def __str__(self) -> str:
        return f"{self.major}:{self.minor}"


class NodeKind(Enum):
    """Kind of device special file.

    Some platforms expose raw disks only as character devices.
    """

    BLOCK = "block"
    CHAR = "char"

    @classmethod
    def from_mode(cls, mode: int) -> "NodeKind | None":
        """Classify a st_mode value, returning None for non-device files."""
        if stat.S_ISBLK(mode):
            return cls.BLOCK
        if stat.S_ISCHR(mode):
            return cls.CHAR
        return None


@dataclass(frozen=True, slots=True)
class DeviceNode:
    """A device special file discovered during a device tree scan.

    Attributes:
        path: Normalized absolute path of the node.
        device_id: Device the node refers to (its st_rdev).
        kind: Block or character node.
    """

    path: str
    device_id: DeviceId
    kind: NodeKind


@dataclass(frozen=True, slots=True)
class PoolReference:
    """Pool name and dataset taken from a pooled filesystem mount source.

    Attributes:
        pool: Pool name (text before the first ``/``).
        filesystem: Dataset path inside the pool, empty for the pool root.
    """

    pool: str
    filesystem: str = ""

    @classmethod
    def from_source(cls, source: str) -> "PoolReference":
        """Split a mount source such as ``tank/home`` at its first separator."""
        pool, _, filesystem = source.partition("/")
        return cls(pool=pool, filesystem=filesystem)


@dataclass(frozen=True, slots=True)
class MountBoundary:
    """Result of walking a path up to the root of its filesystem.

    Attributes:
        device_id: Device of the filesystem containing the path.
        relative_path: Offset of the path inside that filesystem. Never ends
            with a separator; empty when the path is the filesystem root.
        mount_point: Directory where the filesystem is mounted.
    """

    device_id: DeviceId
    relative_path: str
    mount_point: str

    def __post_init__(self) -> None:
        """Validate the relative path invariant."""
        if self.relative_path.endswith("/"):
            msg = f"Relative path must not end with '/': {self.relative_path!r}"
            raise ValueError(msg)

    @property
    def is_mount_root(self) -> bool:
        """Check if the queried path is the filesystem root itself."""
        return self.relative_path == ""


@dataclass(frozen=True, slots=True)
class MountEntry:
    """One entry of the live mount table.

    Attributes:
        mount_id: Unique id of the mount.
        parent_id: Id of the parent mount.
        device_id: Device of the mounted filesystem.
        root: Directory of the filesystem that forms the root of this mount
            (``/`` unless this is a bind mount of a subtree).
        mount_point: Mount target, relative to the process root.
        fs_type: Filesystem type name (``ext4``, ``zfs``, ...).
        source: Mount source (device path, pool dataset, ...).
        options: Per-mount options.
    """

    mount_id: int
    parent_id: int
    device_id: DeviceId
    root: str
    mount_point: str
    fs_type: str
    source: str
    options: tuple[str, ...] = field(default=())

    @property
    def is_bind_subtree(self) -> bool:
        """Check if the mount exposes a subtree rather than the whole filesystem."""
        return len(self.root) > 1
