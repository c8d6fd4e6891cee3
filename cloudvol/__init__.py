"""
cloudvol - Docker volume plugin for cloud block storage.

This package attaches, formats and mounts GCE persistent disks on the local
instance on behalf of the Docker engine, and provides an admin CLI for the
same operations.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli", "driver"]
