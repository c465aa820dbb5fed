"""Storage pool backend.

Resolves a pooled filesystem (dataset -> pool -> member devices).
Pool membership is obtained through one of two interchangeable
queries: the structured ``zpool status -j -P`` output, or the
tabular ``zpool status`` text.
"""

import json
import logging
import os
import re
import subprocess
import sys
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any

from devprobe.backends.base import VolumeBackend
from devprobe.core.errors import CommandUnavailableError
from devprobe.models.device import DeviceId, PoolReference
from devprobe.mounts.mountinfo import DEFAULT_MOUNTINFO_PATH, read_mount_table
from devprobe.utils.shell import command_exists, open_command_stream, run_command

logger = logging.getLogger(__name__)

POOL_FS_TYPE = "zfs"

# Column header of the config section in `zpool status`
STATUS_HEADER = ("NAME", "STATE", "READ", "WRITE", "CKSUM")

# Redundancy group rows: mirror, mirror-0, raidz, raidz1-0, raidz2, ...
_REDUNDANCY_GROUP = re.compile(r"^(mirror(-\d+)?|raidz\d*(-\d+)?)$")


def is_redundancy_group(name: str) -> bool:
    """Check if a vdev name labels a mirror or raidz group."""
    return _REDUNDANCY_GROUP.match(name) is not None


def member_path(name: str, dev_dir: str = "/dev") -> str:
    """Turn a vdev name from pool status into a device path."""
    if name.startswith("/"):
        return name
    return f"{dev_dir}/{name}"


def parse_pool_status(lines: Iterable[str], pool: str, dev_dir: str = "/dev") -> Iterator[str]:
    """Parse ``zpool status`` text output into member device paths.

    The output is scanned in three states: waiting for the column
    header, waiting for the row naming the pool, then collecting leaf
    rows that are online. Rows with fewer than five columns never
    change state and are ignored.

    Args:
        lines: Output lines of ``zpool status <pool>``.
        pool: Pool whose members are wanted.
        dev_dir: Directory prefixed to bare device names.

    Yields:
        Device paths of online leaf vdevs, in output order.
    """
    state = 0
    for line in lines:
        tokens = line.split()
        if len(tokens) < 5:
            continue

        if state == 0:
            if tuple(tokens[:5]) == STATUS_HEADER:
                state = 1
        elif state == 1:
            if tokens[0] == pool:
                state = 2
        else:
            name, vdev_state = tokens[0], tokens[1]
            if is_redundancy_group(name) or vdev_state != "ONLINE":
                continue
            yield member_path(name, dev_dir)


def solaris_raw_path(path: str) -> str:
    """Rewrite a Solaris disk path to its raw (character) counterpart."""
    if path.startswith("/dev/dsk/"):
        return "/dev/rdsk/" + path[len("/dev/dsk/") :]
    if path.startswith("/devices") and not path.endswith(",raw"):
        return path + ",raw"
    return path


def leaf_vdevs(pool_data: dict[str, Any], pool: str) -> list[dict[str, Any]] | None:
    """Return the leaf vdevs of the first top-level vdev chain.

    Starting at the pool's root vdev, descends through the first child
    until a level without children is reached and returns that level.

    Args:
        pool_data: The pool object from ``zpool status -j`` output.
        pool: Pool name, for log messages.

    Returns:
        List of leaf vdev objects, or None if the vdev tree is missing
        or empty.
    """
    root_vdevs = pool_data.get("vdevs")
    if not isinstance(root_vdevs, dict) or not root_vdevs:
        logger.debug("Pool %s status has no vdev tree", pool)
        return None

    root = next(iter(root_vdevs.values()))
    children = list((root.get("vdevs") or {}).values())
    if not children:
        logger.debug("Pool %s vdev tree has no children", pool)
        return None

    while True:
        grandchildren = children[0].get("vdevs")
        if not grandchildren:
            return children
        children = list(grandchildren.values())


class PoolStatusQuery(ABC):
    """One way of asking the pool tool for a pool's member devices."""

    @abstractmethod
    def members(self, pool: str) -> list[str] | None:
        """Return member device paths, or None if this query cannot answer."""


class TextPoolStatusQuery(PoolStatusQuery):
    """Parses the tabular ``zpool status <pool>`` output.

    Args:
        command: Pool tool executable.
        dev_dir: Directory prefixed to bare device names.
        timeout: Seconds to wait for the tool to exit.
    """

    def __init__(self, *, command: str = "zpool", dev_dir: str = "/dev", timeout: float = 60.0) -> None:
        self._command = command
        self._dev_dir = dev_dir
        self._timeout = timeout

    def members(self, pool: str) -> list[str] | None:
        """Run ``zpool status`` and collect the online leaf devices."""
        try:
            with open_command_stream([self._command, "status", pool], timeout=self._timeout) as stream:
                devices = list(parse_pool_status(stream.lines(), pool, self._dev_dir))
        except CommandUnavailableError as e:
            logger.info("%s", e)
            return None

        if stream.returncode != 0 and not devices:
            logger.info("%s status %s exited with %s", self._command, pool, stream.returncode)
            return None
        return devices


class JsonPoolStatusQuery(PoolStatusQuery):
    """Reads the structured ``zpool status -j -P <pool>`` output.

    Only member paths that exist on this host are returned.

    Args:
        command: Pool tool executable.
        timeout: Seconds to wait for the tool.
        platform: Platform string, defaults to sys.platform.
    """

    def __init__(self, *, command: str = "zpool", timeout: float = 60.0, platform: str | None = None) -> None:
        self._command = command
        self._timeout = timeout
        self._platform = platform or sys.platform

    def members(self, pool: str) -> list[str] | None:
        """Run the structured query and walk the vdev tree.

        Output without a usable vdev tree, or with a leaf lacking a
        path, gives no answer so the text query can be tried.
        """
        try:
            result = run_command([self._command, "status", "-j", "-P", pool], timeout=self._timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.info("Structured pool query unavailable: %s", e)
            return None

        if not result.success:
            logger.debug("%s status -j failed: %s", self._command, result.stderr.strip())
            return None

        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug("%s status -j did not return JSON", self._command)
            return None

        pool_data = (data.get("pools") or {}).get(pool) if isinstance(data, dict) else None
        if not isinstance(pool_data, dict):
            return None

        leaves = leaf_vdevs(pool_data, pool)
        if leaves is None:
            return None

        devices: list[str] = []
        for leaf in leaves:
            path = leaf.get("path")
            if not path:
                logger.debug("Vdev %s of pool %s has no path", leaf.get("name", "?"), pool)
                return None
            if not os.path.exists(path):
                logger.debug("Skipping missing pool member %s", path)
                continue
            if self._platform.startswith("sunos"):
                path = solaris_raw_path(path)
            devices.append(path)
        return devices


class PoolBackend(VolumeBackend):
    """Backend for copy-on-write pooled filesystems.

    Args:
        zpool_command: Pool tool executable.
        dev_dir: Directory prefixed to bare device names.
        mountinfo_path: Live mount table used to map directories to datasets.
        prefer_structured: Try the JSON query before parsing text.
        timeout: Seconds to wait for the pool tool.
        platform: Platform string, defaults to sys.platform.
    """

    def __init__(
        self,
        *,
        zpool_command: str = "zpool",
        dev_dir: str = "/dev",
        mountinfo_path: str = DEFAULT_MOUNTINFO_PATH,
        prefer_structured: bool = True,
        timeout: float = 60.0,
        platform: str | None = None,
    ) -> None:
        self._zpool_command = zpool_command
        self._mountinfo_path = mountinfo_path
        text = TextPoolStatusQuery(command=zpool_command, dev_dir=dev_dir, timeout=timeout)
        queries: list[PoolStatusQuery] = [text]
        if prefer_structured:
            queries.insert(0, JsonPoolStatusQuery(command=zpool_command, timeout=timeout, platform=platform))
        self._queries = queries

    @property
    def name(self) -> str:
        """Return the backend identifier."""
        return "zfs"

    def is_available(self) -> bool:
        """Check if the pool tool is installed."""
        return command_exists(self._zpool_command)

    def find_pool(self, directory: str) -> PoolReference | None:
        """Find the pool and dataset holding a directory.

        Args:
            directory: Any path on the filesystem of interest.

        Returns:
            PoolReference, or None if the directory is not on a pool.
        """
        try:
            st = os.stat(directory)
        except OSError as e:
            logger.debug("Cannot stat %s: %s", directory, e)
            return None

        device_id = DeviceId.from_dev(st.st_dev)
        match = None
        for entry in read_mount_table(self._mountinfo_path):
            if entry.device_id == device_id and entry.fs_type == POOL_FS_TYPE:
                match = entry
        if match is None:
            return None
        return PoolReference.from_source(match.source)

    def resolve(self, name: str) -> list[str] | None:
        """Resolve a directory to the member devices of its pool."""
        reference = self.find_pool(name)
        if reference is None:
            return None
        return self.resolve_pool(reference.pool)

    def resolve_pool(self, pool: str) -> list[str] | None:
        """Resolve a pool name to its member devices.

        Args:
            pool: Pool name.

        Returns:
            Member device paths, or None if no query could answer.
        """
        for query in self._queries:
            devices = query.members(pool)
            if devices is not None:
                logger.debug("Pool %s members via %s: %s", pool, type(query).__name__, devices)
                return devices
        return None
