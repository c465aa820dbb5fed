"""Device tree scanner.

Maps a kernel device identifier to a device node path by walking a
device directory depth-first. Paths are built by string joining as the
walk descends; the process working directory is never changed, so
concurrent scans do not interfere with each other.
"""

import logging
import os
import re
import stat
import sys

from devprobe.models.device import DeviceId, DeviceNode, NodeKind

logger = logging.getLogger(__name__)

DEFAULT_DEV_DIR = "/dev"

# Pseudo-device naming the root filesystem; never a usable answer
ROOT_ALIAS = "/dev/root"

# Directory of human-readable aliases whose symlinks are followed
ALIAS_DIR_NAME = "mapper"

# Kernel short-hand names such as dm-0
_SHORTHAND_ALIAS = re.compile(r"^dm-[0-9]")

_EXTRA_SLASHES = re.compile(r"/{2,}")


def strip_extra_slashes(path: str) -> str:
    """Collapse repeated separators and drop a trailing one.

    ``/`` itself is left untouched.

    Args:
        path: Path to normalize.

    Returns:
        Normalized path.
    """
    path = _EXTRA_SLASHES.sub("/", path)
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def is_shorthand_alias(name: str) -> bool:
    """Check if a directory entry name is a kernel short-hand alias (dm-N)."""
    return _SHORTHAND_ALIAS.match(name) is not None


def read_node(path: str, *, follow_symlinks: bool) -> os.stat_result:
    """Stat a directory entry, optionally without following symlinks."""
    return os.stat(path, follow_symlinks=follow_symlinks)


def device_node_kind(platform: str) -> NodeKind:
    """Return the node kind that names whole disks on a platform.

    FreeBSD and macOS only expose disks as character devices.
    """
    if "freebsd" in platform or platform == "darwin":
        return NodeKind.CHAR
    return NodeKind.BLOCK


def raw_node_prefix(platform: str) -> str:
    """Return the name prefix that turns a block node into its raw node."""
    if platform.startswith(("netbsd", "openbsd")):
        return "r"
    return ""


class DeviceTreeScanner:
    """Finds the device node carrying a given device identifier.

    The walk is depth-first and the first match wins. Sibling order is
    whatever ``os.listdir`` yields unless ``sort_entries`` is set.

    Args:
        dev_dir: Directory scanned when no start directory is given.
        platform: Platform string in ``sys.platform`` form.
        sort_entries: Sort sibling entries before visiting them.

    Example:
        >>> scanner = DeviceTreeScanner()
        >>> scanner.find_device(DeviceId(8, 1))
        '/dev/sda1'
    """

    def __init__(
        self,
        *,
        dev_dir: str = DEFAULT_DEV_DIR,
        platform: str | None = None,
        sort_entries: bool = False,
    ) -> None:
        self._dev_dir = dev_dir
        self._platform = platform or sys.platform
        self._sort_entries = sort_entries
        self._is_linux = self._platform.startswith("linux")
        self._kind = device_node_kind(self._platform)
        self._raw_prefix = raw_node_prefix(self._platform)

    @property
    def dev_dir(self) -> str:
        """Return the default start directory."""
        return self._dev_dir

    def find_device(self, device_id: DeviceId, start_dir: str | None = None) -> str | None:
        """Find the path of the node for a device.

        Args:
            device_id: Device to look for.
            start_dir: Directory to start in. Defaults to the scanner's dev_dir.

        Returns:
            Normalized node path, or None if no node matches.
        """
        node = self.find_node(device_id, start_dir)
        return node.path if node is not None else None

    def find_node(self, device_id: DeviceId, start_dir: str | None = None) -> DeviceNode | None:
        """Find the node for a device, including its kind.

        Args:
            device_id: Device to look for.
            start_dir: Directory to start in. Defaults to the scanner's dev_dir.

        Returns:
            DeviceNode for the first match, or None.
        """
        directory = os.path.realpath(start_dir or self._dev_dir)
        logger.debug("Scanning %s for device %s", directory, device_id)
        node = self._search(directory, device_id)
        if node is None:
            logger.debug("No node for device %s under %s", device_id, directory)
        return node

    def _search(self, directory: str, device_id: DeviceId) -> DeviceNode | None:
        """Search one directory level, recursing into subdirectories.

        Args:
            directory: Absolute directory path.
            device_id: Device to look for.

        Returns:
            DeviceNode for the first match below directory, or None.
        """
        try:
            names = os.listdir(directory)
        except OSError as e:
            logger.debug("Cannot open directory %s: %s", directory, e)
            return None

        if self._sort_entries:
            names.sort()

        follow_links = self._is_linux and os.path.basename(directory) == ALIAS_DIR_NAME

        for name in names:
            # Dotfiles and dotdirs (/dev/.tmp.md0, /dev/.static) may hold duplicates
            if name.startswith("."):
                continue

            path = f"{directory}/{name}"
            try:
                st = read_node(path, follow_symlinks=False)
            except OSError:
                continue

            if stat.S_ISLNK(st.st_mode):
                if not follow_links:
                    continue
                try:
                    st = read_node(path, follow_symlinks=True)
                except OSError:
                    continue

            if stat.S_ISDIR(st.st_mode):
                found = self._search(path, device_id)
                if found is not None:
                    return found
                continue

            if NodeKind.from_mode(st.st_mode) is not self._kind or st.st_rdev != device_id.raw:
                continue

            if self._is_linux and is_shorthand_alias(name):
                logger.debug("Skipping short-hand alias %s", path)
                continue

            result = strip_extra_slashes(f"{directory}/{self._raw_prefix}{name}")
            if result == ROOT_ALIAS:
                continue

            return DeviceNode(path=result, device_id=device_id, kind=self._kind)

        return None


def find_device(
    start_dir: str | None,
    device_id: DeviceId,
    *,
    platform: str | None = None,
    sort_entries: bool = False,
) -> str | None:
    """Find the node path for a device below start_dir.

    Args:
        start_dir: Directory to scan, ``/dev`` when None.
        device_id: Device to look for.
        platform: Platform string, defaults to sys.platform.
        sort_entries: Sort sibling entries before visiting them.

    Returns:
        Node path, or None if not found.
    """
    scanner = DeviceTreeScanner(platform=platform, sort_entries=sort_entries)
    return scanner.find_device(device_id, start_dir)
