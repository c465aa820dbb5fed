"""Shell execution utilities.

Provides subprocess execution for the external inventory tools
(zpool, vgs) with a neutral locale and guaranteed child reaping.
"""

import logging
import os
import shutil
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from devprobe.core.errors import CommandUnavailableError

logger = logging.getLogger(__name__)

# Exit status reported when the executable cannot be found or exec fails
EXEC_FAILURE_STATUS = 127

# Locale forced on children so their output parses the same everywhere
NEUTRAL_LOCALE = "C"


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0


@dataclass(slots=True)
class CommandStream:
    """Line stream over the standard output of a running command.

    Only valid inside the ``open_command_stream`` block that produced it.
    ``returncode`` is set once the block exits and the child is reaped.

    Attributes:
        args: Command and arguments being executed.
        process: Underlying process handle.
        returncode: Exit status, None while the child may still be running.
    """

    args: list[str]
    process: subprocess.Popen[str]
    returncode: int | None = field(default=None)

    def lines(self) -> Iterator[str]:
        """Yield stdout lines without their trailing newline.

        The iterator is finite and cannot be restarted.
        """
        stdout = self.process.stdout
        if stdout is None:
            return
        for line in stdout:
            yield line.rstrip("\n")


def child_environment() -> dict[str, str]:
    """Build the environment for inventory commands.

    Returns:
        Copy of the current environment with LC_ALL forced to the C locale.
    """
    return {**os.environ, "LC_ALL": NEUTRAL_LOCALE}


@contextmanager
def open_command_stream(
    args: list[str],
    *,
    timeout: float | None = 60.0,
) -> Iterator[CommandStream]:
    """Spawn a command and expose its standard output as a line stream.

    Standard input and standard error are inherited, standard output is
    piped. Descriptors other than the standard three are closed in the
    child. On exit from the block the pipe is closed and the child is
    waited on, whether the block finished normally or raised.

    Args:
        args: Command and arguments. ``args[0]`` is looked up on PATH.
        timeout: Seconds to wait for the child after the block exits.
            The child is killed when the wait times out.

    Yields:
        CommandStream bound to the running child.

    Raises:
        CommandUnavailableError: If the pipe cannot be created or the
            executable cannot be started.
    """
    try:
        process = subprocess.Popen(
            args,
            stdout=subprocess.PIPE,
            text=True,
            errors="replace",
            env=child_environment(),
            close_fds=True,
        )
    except OSError as e:
        reason = os.strerror(e.errno) if e.errno else str(e)
        raise CommandUnavailableError(args, reason, EXEC_FAILURE_STATUS) from e

    stream = CommandStream(args=list(args), process=process)
    try:
        yield stream
    finally:
        if process.stdout is not None:
            process.stdout.close()
        try:
            stream.returncode = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%s did not exit within %ss, killing it", args[0], timeout)
            process.kill()
            stream.returncode = process.wait()
        logger.debug("%s exited with status %d", args[0], stream.returncode)


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
) -> CommandResult:
    """Execute a shell command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
        env=child_environment(),
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None
