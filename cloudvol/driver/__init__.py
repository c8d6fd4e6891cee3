"""Volume drivers: reconcile cloud block storage with local mounts."""

from .base import Volume, VolumeDriver, VolumeState

__all__ = ["Volume", "VolumeDriver", "VolumeState"]
