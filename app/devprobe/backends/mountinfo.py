"""Mount table backend.

Resolves a directory to the source device of the mount containing it,
as listed in the live mount table.
"""

import logging
import os

from devprobe.backends.base import VolumeBackend
from devprobe.backends.zfs import POOL_FS_TYPE, PoolBackend
from devprobe.models.device import DeviceId, MountEntry, PoolReference
from devprobe.mounts.mountinfo import DEFAULT_MOUNTINFO_PATH, find_mount_entry, read_mount_table

logger = logging.getLogger(__name__)

# Multi-device filesystems whose members the mount table cannot reveal
UNSUPPORTED_FS_TYPES = frozenset({"btrfs"})


class MountTableBackend(VolumeBackend):
    """Backend reading the live mount table.

    Pooled filesystems are handed to the pool backend with the pool name
    taken from the mount source.

    Args:
        mountinfo_path: Mount table in mountinfo format.
        pool_backend: Backend used for pooled filesystems, if any.
    """

    def __init__(
        self,
        *,
        mountinfo_path: str = DEFAULT_MOUNTINFO_PATH,
        pool_backend: PoolBackend | None = None,
    ) -> None:
        self._mountinfo_path = mountinfo_path
        self._pool_backend = pool_backend

    @property
    def name(self) -> str:
        """Return the backend identifier."""
        return "mountinfo"

    def is_available(self) -> bool:
        """Check if the mount table can be read."""
        return os.access(self._mountinfo_path, os.R_OK)

    def find_entry(self, directory: str) -> MountEntry | None:
        """Find the mount table entry of the mount containing directory.

        Args:
            directory: Any existing path.

        Returns:
            The entry, or None if the path or the entry cannot be found.
        """
        canonical = os.path.realpath(directory)
        try:
            st = os.stat(canonical)
        except OSError as e:
            logger.debug("Cannot stat %s: %s", canonical, e)
            return None

        entries = read_mount_table(self._mountinfo_path)
        return find_mount_entry(entries, canonical, DeviceId.from_dev(st.st_dev))

    def bind_root(self, directory: str) -> str | None:
        """Return the filesystem subtree bind-mounted at or above directory.

        For a bind mount of ``/srv/data`` this is ``/srv/data``.

        Args:
            directory: Any existing path.

        Returns:
            Root field of the mount entry, or None if there is no entry
            or the mount exposes the whole filesystem.
        """
        entry = self.find_entry(directory)
        if entry is None or not entry.is_bind_subtree:
            return None
        return entry.root

    def resolve(self, name: str) -> list[str] | None:
        """Resolve a directory to the source device of its mount."""
        entry = self.find_entry(name)
        if entry is None:
            return None

        if entry.fs_type == POOL_FS_TYPE:
            if self._pool_backend is None:
                return None
            return self._pool_backend.resolve_pool(PoolReference.from_source(entry.source).pool)

        if entry.fs_type in UNSUPPORTED_FS_TYPES:
            logger.debug("Mount table cannot resolve %s filesystem at %s", entry.fs_type, entry.mount_point)
            return None

        if not entry.source.startswith("/"):
            logger.debug("Mount source %r of %s is not a device", entry.source, entry.mount_point)
            return None

        return [entry.source]
