"""
Filesystem and block-device operations.

When a root is set (the plugin runs in a container with the host filesystem
mounted at that root), paths are resolved under the root and commands run in
the host mount namespace through nsenter.
"""

import os
import shutil
import subprocess
from typing import List

from cloudvol.driver.exceptions import ExecutionError

MOUNT_NAMESPACE = "/proc/1/ns/mnt"
MOUNT_OPTIONS = "defaults,discard"
MKFS_COMMAND = "mkfs.ext4"


class Filesystem:
    """Local filesystem executor.

    Args:
        root: Host filesystem root (empty when running on the host)
    """

    def __init__(self, root: str = ""):
        self.root = root.rstrip("/")

    def dir_exists(self, path: str) -> bool:
        return os.path.isdir(self.resolve(path))

    def create_dir(self, path: str, recursive: bool = True, mode: int = 0o700) -> None:
        """
        Create a directory.

        Raises:
            ExecutionError: If the directory cannot be created
        """
        target = self.resolve(path)
        try:
            if recursive:
                os.makedirs(target, mode=mode, exist_ok=True)
            else:
                os.mkdir(target, mode)
        except OSError as e:
            raise ExecutionError(f"mkdir {target}", str(e))

    def remove_dir(self, path: str, recursive: bool = False) -> None:
        """
        Remove a directory.

        Raises:
            ExecutionError: If the directory cannot be removed
        """
        target = self.resolve(path)
        try:
            if recursive:
                shutil.rmtree(target)
            else:
                os.rmdir(target)
        except OSError as e:
            raise ExecutionError(f"rmdir {target}", str(e))

    def mount(self, device: str, target: str) -> None:
        """
        Mount a block device.

        Raises:
            ExecutionError: If mounting fails
        """
        self._run(["mount", "-o", MOUNT_OPTIONS, device, target])

    def unmount(self, target: str) -> None:
        """
        Unmount a block device.

        Raises:
            ExecutionError: If unmounting fails
        """
        self._run(["umount", target])

    def format(self, device: str) -> None:
        """
        Format a block device with ext4.

        Devices that already carry a filesystem are left untouched.

        Raises:
            ExecutionError: If formatting fails
        """
        result = subprocess.run(
            self._command(["blkid", "-o", "value", "-s", "TYPE", device]),
            capture_output=True,
            text=True,
            check=False
        )

        if result.returncode == 0 and result.stdout.strip():
            # Already formatted, skip
            return

        self._run([MKFS_COMMAND, device])

    def mount_point_of(self, device: str) -> str:
        """
        Find where a block device is mounted.

        Args:
            device: Device path, symlinks allowed (e.g., /dev/disk/by-id/google-vol1)

        Returns:
            Mount point, or "" if the device is not mounted

        Raises:
            ExecutionError: If the device does not exist or the mount table cannot be read
        """
        resolved = self.resolve(device)
        if not os.path.exists(resolved):
            raise ExecutionError(f"stat {device}", "no such device")

        real_device = os.path.realpath(resolved)
        if self.root and real_device.startswith(self.root + "/"):
            real_device = real_device[len(self.root):]

        mounts_file = f"{self.root}/proc/1/mounts" if self.root else "/proc/self/mounts"
        try:
            with open(mounts_file, "r") as f:
                for line in f:
                    parts = line.split()
                    if len(parts) >= 2 and parts[0] in (device, real_device):
                        return parts[1].replace("\\040", " ")
        except OSError as e:
            raise ExecutionError(f"read {mounts_file}", str(e))
        return ""

    def resolve(self, path: str) -> str:
        """Resolve a host path relative to the root."""
        if self.root:
            return self.root + "/" + path.lstrip("/")
        return path

    def _command(self, args: List[str]) -> List[str]:
        if self.root:
            return ["nsenter", f"--mount={self.root}{MOUNT_NAMESPACE}", "--"] + args
        return args

    def _run(self, args: List[str]) -> None:
        result = subprocess.run(
            self._command(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False
        )

        if result.returncode != 0:
            raise ExecutionError(" ".join(args), result.stdout or "")
