"""Volume group backend.

Expands a logical volume into the physical volumes of its volume group
by listing them with ``vgs``. The group is identified by its UUID when
device-mapper exposes one, otherwise by a name decoded from the
``/dev/mapper/<vg>-<lv>`` alias.
"""

import logging
import os
import sys
from collections.abc import Callable, Iterable, Iterator

from devprobe.backends.base import VolumeBackend
from devprobe.core.errors import CommandUnavailableError
from devprobe.utils.shell import command_exists, open_command_stream

logger = logging.getLogger(__name__)

LINUX_MAPPER_PREFIX = "/dev/mapper/"
FREEBSD_MAPPER_PREFIX = "/dev/linux_lvm/"

# Device-mapper UUIDs of logical volumes start with this tag
DM_LVM_UUID_TAG = "LVM-"

# Group lengths of LVM's printed UUID form
_UUID_GROUPS = (6, 4, 4, 4, 4, 4, 6)

# vgs prints rows with a fixed two-space indent
_VGS_PADDING = 2

VGS_SEPARATOR = ":"


def mapper_prefix_for(platform: str) -> str:
    """Return the logical volume alias directory for a platform."""
    if "freebsd" in platform:
        return FREEBSD_MAPPER_PREFIX
    return LINUX_MAPPER_PREFIX


def format_lvm_uuid(raw: str) -> str:
    """Insert dashes into a 32 character LVM UUID (6-4-4-4-4-4-6)."""
    parts = []
    pos = 0
    for size in _UUID_GROUPS:
        parts.append(raw[pos : pos + size])
        pos += size
    return "-".join(parts)


def volume_group_name(device: str, mapper_prefix: str = LINUX_MAPPER_PREFIX) -> str | None:
    """Decode the volume group name from a logical volume alias.

    Device-mapper names join group and volume with ``-`` and double any
    ``-`` inside either name, so ``/dev/mapper/my--vg-root`` names group
    ``my-vg``.

    Args:
        device: Logical volume alias path.
        mapper_prefix: Alias directory, including the trailing separator.

    Returns:
        Volume group name, or None if device is not under mapper_prefix.
    """
    if not device.startswith(mapper_prefix):
        return None

    encoded = device[len(mapper_prefix) :]
    name: list[str] = []
    i = 0
    while i < len(encoded):
        if encoded[i] != "-":
            name.append(encoded[i])
            i += 1
        elif encoded.startswith("--", i):
            name.append("-")
            i += 2
        else:
            break
    return "".join(name)


def vgs_arguments(command: str, vg_uuid: str | None, vg_name: str | None) -> list[str]:
    """Build the ``vgs`` command line.

    Without ``--separator`` the single pv_name column is left aligned in
    a padded field and its end cannot be told apart from the padding.
    """
    args = [
        command,
        "--options",
        "vg_uuid,pv_name" if vg_uuid else "pv_name",
        "--noheadings",
        "--separator",
        VGS_SEPARATOR,
    ]
    if vg_name is not None:
        args.append(vg_name)
    return args


def parse_vgs_output(lines: Iterable[str], vg_uuid: str | None = None) -> Iterator[str]:
    """Parse ``vgs`` output into physical volume paths.

    Args:
        lines: Output lines of the ``vgs`` command.
        vg_uuid: If given, lines are ``<uuid>:<pv>`` and only lines of
            this group are accepted.

    Yields:
        Physical volume paths, in output order.
    """
    for line in lines:
        text = line[:_VGS_PADDING].lstrip(" ") + line[_VGS_PADDING:]
        text = text.rstrip("\n")

        if vg_uuid is not None:
            prefix = vg_uuid + VGS_SEPARATOR
            if not text.startswith(prefix):
                continue
            text = text[len(prefix) :]

        if text:
            yield text


class LvmBackend(VolumeBackend):
    """Backend for logical volumes.

    Args:
        vgs_command: Volume group listing executable.
        sysfs_dir: Root of sysfs, for device-mapper UUID lookups.
        mapper_prefix: Logical volume alias directory. Defaults per platform.
        timeout: Seconds to wait for vgs.
        platform: Platform string, defaults to sys.platform.
    """

    def __init__(
        self,
        *,
        vgs_command: str = "vgs",
        sysfs_dir: str = "/sys",
        mapper_prefix: str | None = None,
        timeout: float = 60.0,
        platform: str | None = None,
    ) -> None:
        self._vgs_command = vgs_command
        self._sysfs_dir = sysfs_dir
        self._mapper_prefix = mapper_prefix or mapper_prefix_for(platform or sys.platform)
        self._timeout = timeout

    @property
    def name(self) -> str:
        """Return the backend identifier."""
        return "lvm"

    def is_available(self) -> bool:
        """Check if vgs is installed."""
        return command_exists(self._vgs_command)

    def volume_group_uuid(self, device: str) -> str | None:
        """Look up the UUID of the volume group holding a logical volume.

        Reads the device-mapper UUID (``LVM-<vg uuid><lv uuid>``) from
        sysfs and returns the group half in LVM's dashed form.

        Args:
            device: Logical volume device path.

        Returns:
            Volume group UUID, or None if the device is not a logical volume
            or sysfs does not expose it.
        """
        try:
            rdev = os.stat(device).st_rdev
        except OSError:
            return None

        uuid_path = f"{self._sysfs_dir}/dev/block/{os.major(rdev)}:{os.minor(rdev)}/dm/uuid"
        try:
            with open(uuid_path, encoding="ascii", errors="replace") as f:
                dm_uuid = f.read().strip()
        except OSError:
            return None

        raw = dm_uuid[len(DM_LVM_UUID_TAG) : len(DM_LVM_UUID_TAG) + sum(_UUID_GROUPS)]
        if not dm_uuid.startswith(DM_LVM_UUID_TAG) or len(raw) != sum(_UUID_GROUPS):
            return None
        return format_lvm_uuid(raw)

    def _plan(self, device: str) -> tuple[list[str], str | None] | None:
        """Choose the vgs command line for a device.

        Returns:
            Tuple of (arguments, uuid filter), or None if the device
            cannot be tied to a volume group.
        """
        vg_uuid = self.volume_group_uuid(device)
        if vg_uuid is not None:
            return vgs_arguments(self._vgs_command, vg_uuid, None), vg_uuid

        vg_name = volume_group_name(device, self._mapper_prefix)
        if vg_name is None:
            logger.debug("%s is not a logical volume alias", device)
            return None
        return vgs_arguments(self._vgs_command, None, vg_name), None

    def _stream(self, args: list[str], vg_uuid: str | None) -> Iterator[str]:
        try:
            with open_command_stream(args, timeout=self._timeout) as stream:
                yield from parse_vgs_output(stream.lines(), vg_uuid)
        except CommandUnavailableError as e:
            logger.info("%s", e)

    def iter_physical_volumes(self, device: str) -> Iterator[str]:
        """Lazily yield the physical volumes behind a logical volume.

        The vgs child is reaped when the iterator is exhausted or closed.

        Args:
            device: Logical volume device path.

        Yields:
            Physical volume paths, in vgs output order.
        """
        plan = self._plan(device)
        if plan is None:
            return
        yield from self._stream(*plan)

    def pull_physical_volumes(self, device: str, callback: Callable[[str], None]) -> int:
        """Hand each physical volume behind a logical volume to a callback.

        Args:
            device: Logical volume device path.
            callback: Called once per physical volume, in output order.

        Returns:
            Number of physical volumes delivered.
        """
        count = 0
        for pv in self.iter_physical_volumes(device):
            callback(pv)
            count += 1
        return count

    def resolve(self, name: str) -> list[str] | None:
        """Collect the physical volumes behind a logical volume."""
        plan = self._plan(name)
        if plan is None:
            return None
        return list(self._stream(*plan))
