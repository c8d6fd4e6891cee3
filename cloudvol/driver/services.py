"""Cloud disk service capability interface and resource types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from .exceptions import NotSupportedError
from .operations import OperationHandle


@dataclass(frozen=True)
class InstanceIdentity:
    """Identity of the compute instance this process runs on.

    Captured once at startup and passed to the reconciler.
    """

    project: str
    zone: str
    instance: str

    @property
    def uri(self) -> str:
        return f"projects/{self.project}/zones/{self.zone}/instances/{self.instance}"

    def is_user_of(self, disk: "Disk") -> bool:
        """Check whether a disk lists this instance among its users."""
        suffix = "/" + self.uri
        return any(user == self.uri or user.endswith(suffix) for user in disk.users)


@dataclass
class Disk:
    """A remote persistent disk.

    Attributes:
        name: Disk name
        self_link: Disk URI, used as attachment source
        users: URIs of instances the disk is attached to
        size_gb: Disk size in GB
        type: Disk type URI
    """

    name: str
    self_link: str = ""
    users: List[str] = field(default_factory=list)
    size_gb: Optional[int] = None
    type: str = ""


@dataclass
class DiskType:
    """A disk type available in the current zone."""

    name: str
    self_link: str


@dataclass
class DiskSpec:
    """Parameters for creating a disk."""

    name: str
    size_gb: int
    type_link: Optional[str] = None


@dataclass
class AttachedDisk:
    """An attachment entry on an instance."""

    device_name: str
    source: str


@dataclass
class Instance:
    """A compute instance and its attached disks."""

    name: str
    self_link: str = ""
    disks: List[AttachedDisk] = field(default_factory=list)

    def attachment_for(self, disk_link: str) -> Optional[AttachedDisk]:
        for attachment in self.disks:
            if attachment.source == disk_link:
                return attachment
        return None


class CloudDiskService(ABC):
    """Abstract base class for cloud disk services.

    Implementations raise NotFoundError for missing resources and
    ProviderError for any other API failure.
    """

    @abstractmethod
    def list_disks(self) -> List[Disk]:
        """List all disks in the current zone, in provider order."""
        pass

    @abstractmethod
    def get_disk(self, name: str) -> Disk:
        """Get a disk by name.

        Raises:
            NotFoundError: Disk does not exist
        """
        pass

    @abstractmethod
    def attach_disk(self, instance: str, disk: Disk) -> OperationHandle:
        """Attach a disk to an instance, using the disk name as device name."""
        pass

    @abstractmethod
    def detach_disk(self, instance: str, device_name: str) -> OperationHandle:
        """Detach a disk from an instance by device name."""
        pass

    @abstractmethod
    def create_disk(self, spec: DiskSpec) -> OperationHandle:
        """Create a new disk."""
        pass

    def delete_disk(self, name: str) -> OperationHandle:
        """Delete a disk.

        Raises:
            NotSupportedError: Backend does not support deletion
        """
        raise NotSupportedError(f"removing volume '{name}' is not supported by this backend")

    @abstractmethod
    def list_disk_types(self) -> List[DiskType]:
        """List all disk types in the current zone (all pages)."""
        pass

    @abstractmethod
    def get_instance(self, name: str) -> Instance:
        """Get an instance by name."""
        pass

    @abstractmethod
    def get_operation(self, handle: OperationHandle) -> OperationHandle:
        """Fetch the current status of an operation."""
        pass
