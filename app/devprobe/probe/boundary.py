"""Mount boundary walker.

Finds the root of the filesystem containing a path and the path's
offset inside that filesystem, as a bootloader would have to name it.
"""

import logging
import os

from devprobe.backends.mountinfo import MountTableBackend
from devprobe.backends.zfs import PoolBackend
from devprobe.core.errors import InvariantViolationError, os_error_message
from devprobe.models.device import DeviceId, MountBoundary

logger = logging.getLogger(__name__)


def canonicalize(path: str) -> str:
    """Resolve a path to its absolute, symlink-free form.

    Raises:
        InvariantViolationError: If the path cannot be resolved.
    """
    try:
        return os.path.realpath(path, strict=True)
    except OSError as e:
        raise InvariantViolationError(os_error_message("failed to get canonical path of", path, e)) from e


def stat_path(path: str) -> os.stat_result:
    """Stat a path that is known to exist.

    Raises:
        InvariantViolationError: If the stat call fails.
    """
    try:
        return os.stat(path)
    except OSError as e:
        raise InvariantViolationError(os_error_message("cannot stat", path, e)) from e


class MountBoundaryWalker:
    """Walks parent directories until the filesystem changes.

    Args:
        mount_backend: Mount table backend used to detect bind mounts.
            Bind mount detection is skipped when None.
        pool_backend: Pool backend used to detect pooled datasets.
            Dataset prefixes are skipped when None.
    """

    def __init__(
        self,
        *,
        mount_backend: MountTableBackend | None = None,
        pool_backend: PoolBackend | None = None,
    ) -> None:
        self._mount_backend = mount_backend
        self._pool_backend = pool_backend

    def split(self, path: str) -> MountBoundary:
        """Split a path at the root of the filesystem containing it.

        The canonical path is truncated one component at a time. The
        last prefix that is still on the path's device is the mount
        point; the remainder is the relative offset. When the path's own
        parent is already on another device, the path is the mount point
        and the offset is empty.

        Bind mounts report the offset from the bound subtree's point of
        view. Pooled datasets get a ``/<dataset>/@`` prefix.

        Args:
            path: Existing path.

        Returns:
            MountBoundary with the device, offset and mount point.

        Raises:
            InvariantViolationError: If the path cannot be canonicalized
                or one of its ancestors cannot be stat'ed.
        """
        canonical = canonicalize(path)

        dataset: str | None = None
        if self._pool_backend is not None:
            reference = self._pool_backend.find_pool(canonical)
            if reference is not None:
                dataset = reference.filesystem

        device = stat_path(canonical).st_dev

        # Length of the mount point prefix in canonical; 0 for "/"
        offset = 0
        prefix = canonical
        while True:
            slash = prefix.rfind("/")
            if slash < 0:
                msg = f"no `/' in canonical filename `{canonical}'"
                raise InvariantViolationError(msg)
            prefix = prefix[:slash] if slash > 0 else "/"

            if stat_path(prefix).st_dev != device:
                if offset == 0:
                    offset = len(canonical)
                break

            if slash == 0:
                offset = 0
                break
            offset = slash

        mount_point = canonical[:offset] or "/"
        relative = canonical[offset:]

        bind = self._bind_root(mount_point)
        if bind is not None:
            logger.debug("%s is a bind mount of %s", mount_point, bind)
            separator = "" if relative.startswith("/") or not relative else "/"
            relative = f"{bind}{separator}{relative}"

        relative = relative.rstrip("/")
        if dataset is not None:
            relative = f"/{dataset}/@{relative}"

        return MountBoundary(
            device_id=DeviceId.from_dev(device),
            relative_path=relative,
            mount_point=mount_point,
        )

    def _bind_root(self, mount_point: str) -> str | None:
        if self._mount_backend is None:
            return None
        return self._mount_backend.bind_root(mount_point)


def split_at_mount_boundary(path: str, walker: MountBoundaryWalker | None = None) -> MountBoundary:
    """Split a path at the root of its filesystem.

    Args:
        path: Existing path.
        walker: Walker to use; a default one with mount table and pool
            detection is built when None.

    Returns:
        MountBoundary for the path.
    """
    if walker is None:
        pool_backend = PoolBackend()
        walker = MountBoundaryWalker(
            mount_backend=MountTableBackend(pool_backend=pool_backend),
            pool_backend=pool_backend,
        )
    return walker.split(path)


def make_path_relative_to_root(path: str, walker: MountBoundaryWalker | None = None) -> str:
    """Return the offset of a path inside its filesystem.

    The result never ends with ``/`` so a separator can always be
    appended; the filesystem root itself is the empty string.
    """
    return split_at_mount_boundary(path, walker).relative_path
