"""Volume state reconciler.

Brings a named cloud disk from whatever state it is observed in to
attached-and-mounted on this instance, and back. Nothing is persisted between
calls: every operation starts by re-reading the remote disk and the local
mount table.
"""

import logging
import posixpath
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from cloudvol.cli.lib.fs import Filesystem

from .base import Volume, VolumeDriver
from .disk_types import DiskTypeCache
from .exceptions import (
    AlreadyMountedError,
    CloudvolException,
    ExecutionError,
    InvalidOptionError,
    NotFoundError,
    NotMountedError,
    NotSupportedError,
    OperationTimeoutError,
    ProviderError,
)
from .operations import OperationWaiter
from .services import CloudDiskService, Disk, DiskSpec, InstanceIdentity

LOG = logging.getLogger(__name__)

DEVICE_PATH_FORMAT = "/dev/disk/by-id/{prefix}-{name}"
DEFAULT_DEVICE_PREFIX = "google"
MOUNT_DIR_MODE = 0o700

OPTION_SIZE_GB = "sizeGb"
OPTION_TYPE = "type"
DEFAULT_SIZE_GB = 10


def parse_create_options(options: Optional[Dict[str, str]]) -> Tuple[int, Optional[str]]:
    """Parse create options against the recognized schema.

    Args:
        options: Flat string-keyed options (sizeGb, type)

    Returns:
        Tuple of (size_gb, disk type name or None)

    Raises:
        InvalidOptionError: Unrecognized key or malformed value
    """
    size_gb = DEFAULT_SIZE_GB
    type_name = None

    for key, value in (options or {}).items():
        if key == OPTION_SIZE_GB:
            try:
                size_gb = int(value)
            except (TypeError, ValueError):
                raise InvalidOptionError(key, f"option '{key}' must be an integer, got '{value}'")
            if size_gb <= 0:
                raise InvalidOptionError(key, f"option '{key}' must be positive, got '{value}'")
        elif key == OPTION_TYPE:
            if not value:
                raise InvalidOptionError(key, f"option '{key}' must not be empty")
            type_name = value
        else:
            raise InvalidOptionError(key)

    return size_gb, type_name


@dataclass
class _Observed:
    """Volume state derived for the duration of a single call."""

    volume: Volume
    disk: Disk
    device_name: str = ""
    device_path: str = ""


class VolumeReconciler(VolumeDriver):
    """Volume driver that reconciles cloud disks with local mounts.

    Transitions for the same volume name are serialized by a per-name lock;
    different names proceed independently.

    Args:
        service: Cloud disk service capability
        filesystem: Local filesystem executor
        identity: Identity of the local compute instance
        mount_path: Directory under which volumes are mounted
        waiter: Operation waiter (defaults to 5s timeout, 100ms polling)
        device_prefix: Prefix of /dev/disk/by-id entries for attached disks
    """

    def __init__(
        self,
        service: CloudDiskService,
        filesystem: Filesystem,
        identity: InstanceIdentity,
        mount_path: str,
        waiter: Optional[OperationWaiter] = None,
        device_prefix: str = DEFAULT_DEVICE_PREFIX,
    ):
        self.service = service
        self.filesystem = filesystem
        self.identity = identity
        self.mount_path = mount_path
        self.waiter = waiter or OperationWaiter(service)
        self.device_prefix = device_prefix
        self.disk_types = DiskTypeCache(service)

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def list(self) -> List[Volume]:
        try:
            disks = self.service.list_disks()
        except CloudvolException as e:
            raise ProviderError(f"error listing disks: {e.message}", stage="list")

        return [Volume(name=disk.name, ready=self.identity.is_user_of(disk)) for disk in disks]

    def get(self, name: str) -> Volume:
        return self._inspect(name).volume

    def mount(self, name: str) -> str:
        with self._volume_lock(name):
            observed = self._inspect(name)
            return self._mount(observed)

    def unmount(self, name: str) -> None:
        with self._volume_lock(name):
            observed = self._inspect(name)
            volume = observed.volume

            if not volume.path:
                raise NotMountedError(name)

            try:
                self.filesystem.unmount(volume.path)
            except ExecutionError as e:
                raise ProviderError(
                    f"error unmounting volume '{name}' from '{volume.path}': {e.message}", name, "unmount"
                )
            LOG.info("Unmounted volume %s from %s", name, volume.path)

            try:
                self.filesystem.remove_dir(volume.path)
            except ExecutionError as e:
                LOG.warning("Error removing mount point %s of volume %s: %s", volume.path, name, e.message)

            volume.path = ""

            try:
                operation = self.service.detach_disk(self.identity.instance, observed.device_name)
                self.waiter.wait(operation)
            except CloudvolException as e:
                raise self._provider_error(e, f"error detaching volume '{name}': {e.message}", name, "detach")
            volume.ready = False
            LOG.info("Detached volume %s from instance %s", name, self.identity.instance)

    def create(self, name: str, options: Dict[str, str]) -> Volume:
        size_gb, type_name = parse_create_options(options)

        with self._volume_lock(name):
            try:
                disk = self.service.get_disk(name)
                LOG.info("Volume %s already exists, bringing it to mounted state", name)
            except NotFoundError:
                disk = self._create_disk(name, size_gb, type_name)
            except CloudvolException as e:
                raise ProviderError(f"error getting info about disk '{name}': {e.message}", name, "create")

            observed = self._observe(disk)

            if not observed.volume.ready:
                self._attach(observed)

            if not observed.volume.path:
                try:
                    self.filesystem.format(observed.device_path)
                except ExecutionError as e:
                    raise ProviderError(f"error formatting volume '{name}': {e.message}", name, "format")
                self._mount(observed)

            return observed.volume

    def remove(self, name: str) -> None:
        with self._volume_lock(name):
            volume = self._inspect(name).volume
            if volume.path:
                raise ProviderError(f"volume '{name}' is still mounted on '{volume.path}'", name, "remove")

            try:
                operation = self.service.delete_disk(name)
                self.waiter.wait(operation)
            except NotSupportedError:
                raise
            except CloudvolException as e:
                raise self._provider_error(e, f"error removing volume '{name}': {e.message}", name, "remove")
            LOG.info("Removed volume %s", name)

    def _inspect(self, name: str) -> _Observed:
        try:
            disk = self.service.get_disk(name)
        except NotFoundError:
            raise
        except CloudvolException as e:
            raise ProviderError(f"error getting info about disk '{name}': {e.message}", name, "inspect")
        return self._observe(disk)

    def _observe(self, disk: Disk) -> _Observed:
        observed = _Observed(volume=Volume(name=disk.name), disk=disk)
        if not self.identity.is_user_of(disk):
            return observed

        observed.volume.ready = True
        observed.device_name = self._device_name(disk)
        observed.device_path = self._device_path(observed.device_name)

        try:
            observed.volume.path = self.filesystem.mount_point_of(observed.device_path)
        except ExecutionError as e:
            raise ProviderError(f"unable to get mount info for disk '{disk.name}': {e.message}", disk.name, "inspect")
        return observed

    def _mount(self, observed: _Observed) -> str:
        volume = observed.volume
        if volume.path:
            raise AlreadyMountedError(volume.name, volume.path)

        if not volume.ready:
            self._attach(observed)

        mount_point = posixpath.join(self.mount_path, volume.name)

        try:
            self.filesystem.create_dir(mount_point, recursive=True, mode=MOUNT_DIR_MODE)
        except ExecutionError as e:
            raise ProviderError(
                f"error creating mount point '{mount_point}' for volume '{volume.name}': {e.message}",
                volume.name,
                "mount",
            )

        try:
            self.filesystem.mount(observed.device_path, mount_point)
        except ExecutionError as e:
            raise ProviderError(
                f"error mounting volume '{volume.name}' on '{mount_point}': {e.message}", volume.name, "mount"
            )

        volume.path = mount_point
        LOG.info("Mounted volume %s (%s) on %s", volume.name, observed.device_path, mount_point)
        return mount_point

    def _attach(self, observed: _Observed) -> None:
        disk = observed.disk
        try:
            operation = self.service.attach_disk(self.identity.instance, disk)
            self.waiter.wait(operation)
        except CloudvolException as e:
            raise self._provider_error(e, f"error attaching volume '{disk.name}': {e.message}", disk.name, "attach")

        observed.device_name = disk.name
        observed.device_path = self._device_path(disk.name)
        observed.volume.ready = True
        LOG.info("Attached volume %s to instance %s", disk.name, self.identity.instance)

    def _create_disk(self, name: str, size_gb: int, type_name: Optional[str]) -> Disk:
        type_link = None
        if type_name:
            try:
                type_link = self.disk_types.resolve(type_name).self_link
            except NotFoundError:
                raise
            except CloudvolException as e:
                raise ProviderError(f"error resolving disk type '{type_name}': {e.message}", name, "create")

        try:
            operation = self.service.create_disk(DiskSpec(name=name, size_gb=size_gb, type_link=type_link))
            self.waiter.wait(operation)
            disk = self.service.get_disk(name)
        except CloudvolException as e:
            raise self._provider_error(e, f"error creating volume '{name}': {e.message}", name, "create")

        LOG.info("Created volume %s (size=%sGB, type=%s)", name, size_gb, type_name or "default")
        return disk

    def _device_name(self, disk: Disk) -> str:
        try:
            instance = self.service.get_instance(self.identity.instance)
        except CloudvolException as e:
            raise ProviderError(
                f"error getting attachment info for disk '{disk.name}': {e.message}", disk.name, "inspect"
            )
        attachment = instance.attachment_for(disk.self_link)
        return attachment.device_name if attachment else disk.name

    def _device_path(self, device_name: str) -> str:
        return DEVICE_PATH_FORMAT.format(prefix=self.device_prefix, name=device_name)

    def _volume_lock(self, name: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
            return lock

    @staticmethod
    def _provider_error(cause: CloudvolException, message: str, name: str, stage: str) -> ProviderError:
        if isinstance(cause, OperationTimeoutError):
            return OperationTimeoutError(message, name, stage)
        return ProviderError(message, name, stage)
