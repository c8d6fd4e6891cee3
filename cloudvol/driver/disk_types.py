"""
Disk-type lookup cache.

The mapping is loaded with one full listing on first use and rebuilt whole
whenever a lookup misses. A miss right after a reload is final.
"""

import logging
import threading
from typing import Dict, Optional

from .exceptions import NotFoundError
from .services import CloudDiskService, DiskType

LOG = logging.getLogger(__name__)


class DiskTypeCache:
    """Name to DiskType mapping for the current project and zone."""

    def __init__(self, service: CloudDiskService):
        self.service = service
        self._types: Optional[Dict[str, DiskType]] = None
        self._lock = threading.Lock()

    def resolve(self, type_name: str) -> DiskType:
        """Resolve a disk type name.

        Args:
            type_name: Disk type name (e.g., "pd-ssd")

        Returns:
            The disk type descriptor

        Raises:
            NotFoundError: Type does not exist in this zone
        """
        with self._lock:
            if self._types is not None and type_name in self._types:
                return self._types[type_name]

            self._types = self._load()

            if type_name in self._types:
                return self._types[type_name]

        raise NotFoundError(f"disk type '{type_name}' not found")

    def _load(self) -> Dict[str, DiskType]:
        types = {disk_type.name: disk_type for disk_type in self.service.list_disk_types()}
        LOG.info("Loaded %d disk types", len(types))
        return types
