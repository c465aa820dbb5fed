"""Device node classification helpers."""

import os
import re
import stat
import sys

from devprobe.core.errors import ProbeError, os_error_message

FLOPPY_MAJOR = 2
RAW_FLOPPY_MAJOR = 9

_FLOPPY_NAME = re.compile(r"^/dev/fd[0-9]")

# Platforms with a fixed floppy major number
_FLOPPY_MAJOR_PLATFORMS = ("linux", "freebsd", "gnukfreebsd", "netbsd", "openbsd")


def _stat_or_fail(path: str) -> os.stat_result:
    try:
        return os.stat(path)
    except OSError as e:
        raise ProbeError(os_error_message("cannot stat", path, e)) from e


def check_block_device(path: str) -> str | None:
    """Return path if it is a block device, None otherwise.

    Raises:
        ProbeError: If the path cannot be stat'ed.
    """
    if stat.S_ISBLK(_stat_or_fail(path).st_mode):
        return path
    return None


def check_char_device(path: str) -> str | None:
    """Return path if it is a character device, None otherwise.

    Raises:
        ProbeError: If the path cannot be stat'ed.
    """
    if stat.S_ISCHR(_stat_or_fail(path).st_mode):
        return path
    return None


def is_floppy(path: str, *, platform: str | None = None) -> bool:
    """Guess whether a device node is a floppy drive.

    Uses the floppy major number where the platform has a fixed one and
    the ``/dev/fdN`` naming convention elsewhere. Nodes that cannot be
    opened are not floppies.

    Args:
        path: Device node path.
        platform: Platform string, defaults to sys.platform.

    Returns:
        True if the node looks like a floppy drive.
    """
    platform = platform or sys.platform

    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return False
    try:
        st = os.fstat(fd)
    except OSError:
        return False
    finally:
        os.close(fd)

    major = os.major(st.st_rdev)
    if platform.startswith("netbsd") and major == RAW_FLOPPY_MAJOR:
        return True
    if platform.startswith(_FLOPPY_MAJOR_PLATFORMS):
        return major == FLOPPY_MAJOR
    return _FLOPPY_NAME.match(path) is not None
