"""Utility modules for devprobe.

This module exports commonly used utility functions.
"""

from devprobe.utils.formatting import (
    console,
    create_detail_table,
    create_device_table,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from devprobe.utils.shell import (
    CommandResult,
    CommandStream,
    command_exists,
    open_command_stream,
    run_command,
)

__all__ = [
    "CommandResult",
    "CommandStream",
    "command_exists",
    "console",
    "create_detail_table",
    "create_device_table",
    "err_console",
    "open_command_stream",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
]
