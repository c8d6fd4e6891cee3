"""
Container runtime detection.
"""

import os
import re
from typing import Optional

_CONTAINER_ID = re.compile(r"(?:docker|containerd|crio|libpod)[-/]([0-9a-f]{64})")


def get_container_id(cgroup_path: str = "/proc/self/cgroup") -> Optional[str]:
    """
    Get the id of the container this process runs in.

    Args:
        cgroup_path: cgroup membership file to inspect

    Returns:
        Container id, or None when not running in a container
    """
    try:
        with open(cgroup_path, "r") as f:
            for line in f:
                match = _CONTAINER_ID.search(line)
                if match:
                    return match.group(1)
    except OSError:
        return None
    return None


def in_container(cgroup_path: str = "/proc/self/cgroup", marker: str = "/.dockerenv") -> bool:
    """Check whether this process runs inside a container."""
    return os.path.exists(marker) or get_container_id(cgroup_path) is not None
