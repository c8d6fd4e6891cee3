"""
In-memory fakes of the cloud disk service and filesystem executor.
"""

from typing import Dict, List, Optional

import pytest

from cloudvol.driver.exceptions import ExecutionError, NotFoundError
from cloudvol.driver.operations import OperationHandle, OperationWaiter
from cloudvol.driver.reconciler import VolumeReconciler
from cloudvol.driver.services import (
    AttachedDisk,
    CloudDiskService,
    Disk,
    DiskSpec,
    DiskType,
    Instance,
    InstanceIdentity,
)

API = "https://www.googleapis.com/compute/v1/"


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeDiskService(CloudDiskService):
    """Cloud disk service keeping disks and attachments in memory.

    Mutations take effect immediately; the returned operation reports DONE
    after `polls_until_done` get_operation calls (never, if None).

    Set `failures[method] = exception` to make a method raise.
    """

    def __init__(self, identity: InstanceIdentity, polls_until_done: Optional[int] = 1, supports_delete=True):
        self.identity = identity
        self.polls_until_done = polls_until_done
        self.supports_delete = supports_delete
        self.disks: Dict[str, Disk] = {}
        self.attachments: List[AttachedDisk] = []
        self.disk_types = [
            DiskType(name="pd-standard", self_link=self._zone_link("diskTypes/pd-standard")),
            DiskType(name="ssd", self_link=self._zone_link("diskTypes/ssd")),
        ]
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.created: List[DiskSpec] = []
        self.disk_type_listings = 0
        self._operations: Dict[str, int] = {}
        self._op_counter = 0

    @property
    def instance_link(self) -> str:
        return API + self.identity.uri

    def add_disk(self, name: str, attached: bool = False, device_name: Optional[str] = None) -> Disk:
        disk = Disk(name=name, self_link=self._zone_link(f"disks/{name}"), size_gb=10)
        self.disks[name] = disk
        if attached:
            disk.users.append(self.instance_link)
            self.attachments.append(AttachedDisk(device_name=device_name or name, source=disk.self_link))
        return disk

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    def list_disks(self) -> List[Disk]:
        self._record("list_disks")
        return list(self.disks.values())

    def get_disk(self, name: str) -> Disk:
        self._record("get_disk", name)
        if name not in self.disks:
            raise NotFoundError(f"disk '{name}' not found")
        return self.disks[name]

    def attach_disk(self, instance: str, disk: Disk) -> OperationHandle:
        self._record("attach_disk", instance, disk.name)
        disk.users.append(self.instance_link)
        self.attachments.append(AttachedDisk(device_name=disk.name, source=disk.self_link))
        return self._operation(disk.self_link)

    def detach_disk(self, instance: str, device_name: str) -> OperationHandle:
        self._record("detach_disk", instance, device_name)
        attachment = next(a for a in self.attachments if a.device_name == device_name)
        self.attachments.remove(attachment)
        for disk in self.disks.values():
            if disk.self_link == attachment.source:
                disk.users.remove(self.instance_link)
                return self._operation(disk.self_link)
        return self._operation("")

    def create_disk(self, spec: DiskSpec) -> OperationHandle:
        self._record("create_disk", spec.name)
        self.created.append(spec)
        disk = self.add_disk(spec.name)
        disk.size_gb = spec.size_gb
        disk.type = spec.type_link or ""
        return self._operation(disk.self_link)

    def delete_disk(self, name: str) -> OperationHandle:
        if not self.supports_delete:
            return super().delete_disk(name)
        self._record("delete_disk", name)
        link = self.disks.pop(name).self_link
        return self._operation(link)

    def list_disk_types(self) -> List[DiskType]:
        self._record("list_disk_types")
        self.disk_type_listings += 1
        return list(self.disk_types)

    def get_instance(self, name: str) -> Instance:
        self._record("get_instance", name)
        return Instance(name=name, self_link=self.instance_link, disks=list(self.attachments))

    def get_operation(self, handle: OperationHandle) -> OperationHandle:
        self._record("get_operation", handle.name)
        self._operations[handle.name] += 1
        done = self.polls_until_done is not None and self._operations[handle.name] >= self.polls_until_done
        return OperationHandle(name=handle.name, target_link=handle.target_link, status="DONE" if done else "RUNNING")

    def _record(self, method: str, *args) -> None:
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]

    def _operation(self, target_link: str) -> OperationHandle:
        self._op_counter += 1
        name = f"operation-{self._op_counter}"
        self._operations[name] = 0
        return OperationHandle(name=name, target_link=target_link, status="PENDING")

    def _zone_link(self, suffix: str) -> str:
        return API + f"projects/{self.identity.project}/zones/{self.identity.zone}/{suffix}"


class FakeFilesystem:
    """Filesystem executor keeping a mount table in memory.

    Set `failures[method] = ExecutionError(...)` to make a method fail.
    """

    def __init__(self):
        self.root = ""
        self.mounts: Dict[str, str] = {}
        self.dirs: Dict[str, int] = {}
        self.formatted: List[str] = []
        self.failures: Dict[str, ExecutionError] = {}
        self.calls: List[tuple] = []

    def calls_to(self, method: str) -> List[tuple]:
        return [call for call in self.calls if call[0] == method]

    def dir_exists(self, path: str) -> bool:
        self._record("dir_exists", path)
        return path in self.dirs

    def create_dir(self, path: str, recursive: bool = True, mode: int = 0o700) -> None:
        self._record("create_dir", path, recursive, mode)
        self.dirs[path] = mode

    def remove_dir(self, path: str, recursive: bool = False) -> None:
        self._record("remove_dir", path, recursive)
        self.dirs.pop(path, None)

    def mount(self, device: str, target: str) -> None:
        self._record("mount", device, target)
        self.mounts[device] = target

    def unmount(self, target: str) -> None:
        self._record("unmount", target)
        for device, mount_point in list(self.mounts.items()):
            if mount_point == target:
                del self.mounts[device]

    def format(self, device: str) -> None:
        self._record("format", device)
        self.formatted.append(device)

    def mount_point_of(self, device: str) -> str:
        self._record("mount_point_of", device)
        return self.mounts.get(device, "")

    def _record(self, method: str, *args) -> None:
        self.calls.append((method,) + args)
        if method in self.failures:
            raise self.failures[method]


@pytest.fixture
def identity():
    return InstanceIdentity(project="proj", zone="us-central1-f", instance="node-1")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(identity):
    return FakeDiskService(identity)


@pytest.fixture
def filesystem():
    return FakeFilesystem()


@pytest.fixture
def reconciler(service, filesystem, identity, clock):
    waiter = OperationWaiter(service, clock=clock.time, sleep=clock.sleep)
    return VolumeReconciler(service, filesystem, identity, mount_path="/mnt", waiter=waiter)
