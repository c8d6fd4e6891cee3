"""Base class for volume drivers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List


class VolumeState(str, Enum):
    """Observed state of a volume."""

    DETACHED = "detached"
    ATTACHED_UNMOUNTED = "attached_unmounted"
    ATTACHED_MOUNTED = "attached_mounted"


@dataclass
class Volume:
    """A volume as exposed to callers.

    Attributes:
        name: Volume name, also the remote disk name
        path: Local mount point, empty when unmounted
        ready: True when the disk is attached to the local instance
    """

    name: str
    path: str = ""
    ready: bool = False

    @property
    def state(self) -> VolumeState:
        if not self.ready:
            return VolumeState.DETACHED
        if self.path:
            return VolumeState.ATTACHED_MOUNTED
        return VolumeState.ATTACHED_UNMOUNTED


class VolumeDriver(ABC):
    """Abstract base class for volume drivers.

    A volume driver makes cloud block storage available locally by name.
    """

    @abstractmethod
    def create(self, name: str, options: Dict[str, str]) -> Volume:
        """Create, attach, format and mount a new volume.

        Raises:
            InvalidOptionError: Unrecognized or malformed option
            NotFoundError: Requested disk type does not exist
            ProviderError: A creation stage failed
        """
        pass

    @abstractmethod
    def remove(self, name: str) -> None:
        """Delete a volume.

        Raises:
            NotSupportedError: Backend cannot delete volumes
        """
        pass

    @abstractmethod
    def list(self) -> List[Volume]:
        """List all volumes known to the backend."""
        pass

    @abstractmethod
    def get(self, name: str) -> Volume:
        """Get a single volume with its attachment and mount state."""
        pass

    @abstractmethod
    def mount(self, name: str) -> str:
        """Make a volume available locally and return its mount point."""
        pass

    @abstractmethod
    def unmount(self, name: str) -> None:
        """Make a volume unavailable locally."""
        pass
