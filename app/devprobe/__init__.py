"""devprobe - resolve the storage devices behind a filesystem path."""

__version__ = "0.1.0"
