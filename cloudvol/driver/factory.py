"""
Volume driver selection.
"""

import logging
from typing import Optional

from cloudvol.cli.lib.config import CloudvolConfig
from cloudvol.cli.lib.container import get_container_id, in_container
from cloudvol.cli.lib.fs import Filesystem

from .base import VolumeDriver

LOG = logging.getLogger(__name__)

DRIVERS = ("gce",)


def create_filesystem(cfg: CloudvolConfig) -> Filesystem:
    """
    Build the filesystem executor.

    Inside a container the host filesystem is expected at `host_root` and
    commands are run in the host mount namespace.
    """
    if in_container():
        LOG.info("Running in container %s, using host root %s", get_container_id() or "unknown", cfg.host_root)
        return Filesystem(root=cfg.host_root)
    return Filesystem()


def create_driver(cfg: CloudvolConfig, name: Optional[str] = None) -> VolumeDriver:
    """
    Create the volume driver named in config (or `name`).

    Raises:
        ValueError: Unknown driver name
        ProviderError: Driver setup failed
    """
    name = name or cfg.driver
    LOG.info("Creating storage driver (mode=%s)", name)

    if name == "gce":
        from .gce import gce_from_configuration

        return gce_from_configuration(cfg, create_filesystem(cfg))

    raise ValueError(f"unknown driver type '{name}' (supported: {', '.join(DRIVERS)})")
