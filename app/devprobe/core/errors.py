"""Exception hierarchy for devprobe.

Not-found conditions are reported as ``None`` results and never raise.
Exceptions are reserved for conditions where continuing would produce a
wrong device mapping.
"""

import os


class ProbeError(Exception):
    """Base exception for device probing errors."""


class InvariantViolationError(ProbeError):
    """Raised when the host contradicts an assumption the probe relies on.

    Examples are a path that exists but cannot be canonicalized, or a
    canonical path without a separator.
    """


class CommandUnavailableError(ProbeError):
    """Raised when an external inventory command cannot be started.

    Attributes:
        command: Command line that failed.
        returncode: Exit status reported for the failure (127 for exec failure).
    """

    def __init__(self, args: list[str], reason: str, returncode: int) -> None:
        self.command = list(args)
        self.returncode = returncode
        super().__init__(f"Cannot run {args[0] if args else '<empty>'}: {reason}")


def os_error_message(action: str, path: str, error: OSError) -> str:
    """Format an OS error as a single diagnostic line.

    Args:
        action: What was attempted, e.g. "cannot stat".
        path: Path involved.
        error: The OSError raised by the system call.

    Returns:
        Message such as ``cannot stat `/x': No such file or directory``.
    """
    reason = os.strerror(error.errno) if error.errno else str(error)
    return f"{action} `{path}': {reason}"
