"""Live mount table reader.

Parses the Linux ``/proc/self/mountinfo`` format::

    36 35 98:0 /mnt1 /mnt2 rw,noatime master:1 - ext3 /dev/root rw,errors=continue
    (1)(2)(3)   (4)   (5)      (6)       (7)  (8) (9)     (10)        (11)

Fields 7 are optional and terminated by a single ``-``. Paths escape
space, tab, newline and backslash as three-digit octal sequences.
"""

import logging
import os
import re
from collections.abc import Iterable

from devprobe.models.device import DeviceId, MountEntry

logger = logging.getLogger(__name__)

DEFAULT_MOUNTINFO_PATH = "/proc/self/mountinfo"

_OCTAL_ESCAPE = re.compile(r"\\([0-7]{3})")


def unescape_mount_path(value: str) -> str:
    """Decode octal escapes such as ``\\040`` in a mount table field."""
    return _OCTAL_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), value)


def parse_mountinfo_line(line: str) -> MountEntry | None:
    """Parse a single mountinfo line.

    Args:
        line: One line of mountinfo output.

    Returns:
        MountEntry, or None if the line is malformed.
    """
    fields = line.split()
    try:
        separator = fields.index("-", 6)
    except ValueError:
        logger.debug("Skipping mountinfo line without separator: %r", line[:100])
        return None

    if separator < 6 or len(fields) < separator + 3:
        logger.debug("Skipping short mountinfo line: %r", line[:100])
        return None

    try:
        mount_id = int(fields[0])
        parent_id = int(fields[1])
        device_id = DeviceId.parse(fields[2])
    except ValueError:
        logger.debug("Skipping mountinfo line with bad ids: %r", line[:100])
        return None

    return MountEntry(
        mount_id=mount_id,
        parent_id=parent_id,
        device_id=device_id,
        root=unescape_mount_path(fields[3]),
        mount_point=unescape_mount_path(fields[4]),
        fs_type=fields[separator + 1],
        source=unescape_mount_path(fields[separator + 2]),
        options=tuple(fields[5].split(",")),
    )


def parse_mountinfo(lines: Iterable[str]) -> list[MountEntry]:
    """Parse mountinfo content, skipping malformed lines.

    Args:
        lines: Lines of mountinfo output.

    Returns:
        Entries in table order.
    """
    entries: list[MountEntry] = []
    for line in lines:
        if not line.strip():
            continue
        entry = parse_mountinfo_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def read_mount_table(path: str = DEFAULT_MOUNTINFO_PATH) -> list[MountEntry]:
    """Read and parse the live mount table.

    Args:
        path: Mountinfo file to read.

    Returns:
        Parsed entries; empty if the table cannot be read.
    """
    try:
        with open(path, encoding="utf-8", errors="surrogateescape") as f:
            return parse_mountinfo(f)
    except OSError as e:
        logger.info("Cannot read mount table %s: %s", path, e)
        return []


def _is_under(directory: str, mount_point: str) -> bool:
    if mount_point == "/":
        return directory.startswith("/")
    return directory == mount_point or directory.startswith(mount_point + "/")


def find_mount_entry(
    entries: Iterable[MountEntry],
    directory: str,
    device_id: DeviceId | None = None,
) -> MountEntry | None:
    """Find the mount that contains a directory.

    Picks the deepest mount point that is a prefix of directory. Among
    equally deep candidates the later entry wins, since later mounts
    shadow earlier ones at the same target.

    Args:
        entries: Mount table entries in table order.
        directory: Absolute, canonical directory path.
        device_id: If given, only entries for this device are considered.

    Returns:
        Matching entry, or None.
    """
    directory = os.path.normpath(directory)
    best: MountEntry | None = None
    for entry in entries:
        if device_id is not None and entry.device_id != device_id:
            continue
        if not _is_under(directory, entry.mount_point):
            continue
        if best is None or len(entry.mount_point) >= len(best.mount_point):
            best = entry
    return best
