"""Device tree scanning and device node classification."""

from devprobe.scanner.devtree import DeviceTreeScanner, find_device
from devprobe.scanner.nodes import check_block_device, check_char_device, is_floppy

__all__ = ["DeviceTreeScanner", "check_block_device", "check_char_device", "find_device", "is_floppy"]
