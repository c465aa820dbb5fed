"""Abstract base class for volume backends.

This module defines the VolumeBackend interface that every resolver of
multi-device volumes (mount table, storage pools, volume groups) must
implement.
"""

from abc import ABC, abstractmethod


class VolumeBackend(ABC):
    """Abstract base class for all volume backends.

    Backends expand a directory, pool or volume name into the raw device
    paths that compose the underlying storage. They never raise for a
    missing answer: ``None`` means the backend cannot resolve the name,
    an empty list means it resolved to no devices.

    Example:
        >>> backend = PoolBackend()
        >>> if backend.is_available():
        ...     print(backend.resolve("/tank/home"))
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short identifier for logging and display."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the tools or tables this backend needs are present.

        Returns:
            True if the backend can be queried, False otherwise.
        """

    @abstractmethod
    def resolve(self, name: str) -> list[str] | None:
        """Resolve a name into device paths.

        Args:
            name: Directory, pool or device name, depending on the backend.

        Returns:
            Device paths in discovery order, or None if unavailable.
        """

    def resolve_if_available(self, name: str) -> list[str] | None:
        """Resolve a name, returning None when the backend is unavailable.

        Args:
            name: Directory, pool or device name.

        Returns:
            Device paths, or None.
        """
        if not self.is_available():
            return None
        return self.resolve(name)
