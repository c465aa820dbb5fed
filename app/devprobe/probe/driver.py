"""Root resolution driver.

Determines the device node(s) that hold a directory: first by asking
the volume backends in priority order, then by scanning the device
tree for the directory's own device number.
"""

import logging
import os
import sys

from devprobe.backends.base import VolumeBackend
from devprobe.backends.lvm import LvmBackend
from devprobe.backends.mountinfo import MountTableBackend
from devprobe.backends.zfs import PoolBackend
from devprobe.core.config import ProbeConfig
from devprobe.core.errors import InvariantViolationError, os_error_message
from devprobe.models.device import DeviceId
from devprobe.probe.boundary import MountBoundaryWalker, canonicalize
from devprobe.scanner.devtree import ROOT_ALIAS, DeviceTreeScanner

logger = logging.getLogger(__name__)

# Kernel short-hand names for device-mapper nodes
DM_ALIAS_PREFIX = "/dev/dm-"


def is_pseudo_device(path: str) -> bool:
    """Check if a path is the root alias or a device-mapper short-hand node."""
    return path == ROOT_ALIAS or path.startswith(DM_ALIAS_PREFIX)


class RootResolver:
    """Resolves directories to the devices that store them.

    Args:
        config: Probe configuration. Defaults are used when None.
        platform: Platform string, defaults to sys.platform.
    """

    def __init__(self, config: ProbeConfig | None = None, *, platform: str | None = None) -> None:
        self._config = config or ProbeConfig()
        self._platform = platform or sys.platform
        timeout = float(self._config.command_timeout_seconds)

        self.pool_backend = PoolBackend(
            zpool_command=self._config.zpool_command,
            dev_dir=self._config.dev_dir,
            mountinfo_path=self._config.mountinfo_path,
            prefer_structured=self._config.prefer_structured,
            timeout=timeout,
            platform=self._platform,
        )
        self.mount_backend = MountTableBackend(
            mountinfo_path=self._config.mountinfo_path,
            pool_backend=self.pool_backend,
        )
        self.lvm_backend = LvmBackend(
            vgs_command=self._config.vgs_command,
            sysfs_dir=self._config.sysfs_dir,
            timeout=timeout,
            platform=self._platform,
        )
        self.scanner = DeviceTreeScanner(
            dev_dir=self._config.dev_dir,
            platform=self._platform,
            sort_entries=self._config.sort_entries,
        )
        self.walker = MountBoundaryWalker(
            mount_backend=self.mount_backend,
            pool_backend=self.pool_backend,
        )

    @property
    def config(self) -> ProbeConfig:
        """Return the active configuration."""
        return self._config

    def backends(self) -> list[VolumeBackend]:
        """Return the directory backends in the order they are tried.

        The mount table backend only exists on Linux.
        """
        ordered: list[VolumeBackend] = []
        if self._platform.startswith("linux"):
            ordered.append(self.mount_backend)
        ordered.append(self.pool_backend)
        return ordered

    def resolve_root_devices(self, path: str) -> list[str] | None:
        """Resolve a directory to the device nodes holding it.

        Args:
            path: Existing directory or file.

        Returns:
            Device node paths, or None if no device could be found.

        Raises:
            InvariantViolationError: If a backend result cannot be
                canonicalized or the path itself cannot be stat'ed.
        """
        devices = self._from_backends(path)
        if devices:
            concrete = self._concretize(devices)
            if concrete is not None:
                return concrete
            logger.info("Discarding backend result for %s, falling back to a device scan", path)

        return self._from_device_scan(path)

    def _from_backends(self, path: str) -> list[str] | None:
        for backend in self.backends():
            devices = backend.resolve_if_available(path)
            if devices:
                logger.debug("Backend %s resolved %s to %s", backend.name, path, devices)
                return devices
            logger.debug("Backend %s has no answer for %s", backend.name, path)
        return None

    def _concretize(self, devices: list[str]) -> list[str] | None:
        """Canonicalize backend results and replace pseudo-devices.

        Returns:
            Concrete device paths, or None if any pseudo-device could not
            be mapped to a real node.
        """
        result: list[str] = []
        for device in devices:
            current = device if is_pseudo_device(device) else canonicalize(device)

            root = current == ROOT_ALIAS
            dm = current.startswith(DM_ALIAS_PREFIX)
            if not root and not dm:
                result.append(current)
                continue

            try:
                rdev = os.stat(current).st_rdev
            except OSError as e:
                logger.debug("Cannot stat %s: %s", current, e)
                return None

            start_dir = self._config.mapper_dir if dm else self._config.dev_dir
            node = self.scanner.find_device(DeviceId.from_dev(rdev), start_dir)
            if node is None:
                logger.debug("No alias for %s under %s", current, start_dir)
                return None
            result.append(node)
        return result

    def _from_device_scan(self, path: str) -> list[str] | None:
        try:
            dev = os.stat(path).st_dev
        except OSError as e:
            raise InvariantViolationError(os_error_message("cannot stat", path, e)) from e

        node = self.scanner.find_device(DeviceId.from_dev(dev), self._config.dev_dir)
        if node is None:
            return None
        return [node]


def resolve_root_devices(path: str, config: ProbeConfig | None = None) -> list[str] | None:
    """Resolve a directory to the device nodes holding it.

    Args:
        path: Existing directory or file.
        config: Probe configuration. Defaults are used when None.

    Returns:
        Device node paths, or None if no device could be found.
    """
    return RootResolver(config).resolve_root_devices(path)
