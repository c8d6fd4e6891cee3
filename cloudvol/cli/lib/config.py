"""
Configuration loader for cloudvol.

Environment-specific settings (mount root, listen address, GCE identity
overrides, operation polling) come from an INI file instead of code.
"""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_CONFIG_PATH = Path("/etc/cloudvol/cloudvol.conf")


@dataclass(frozen=True)
class CloudvolConfig:
    driver: str = "gce"
    mount_path: str = "/mnt"
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    socket_path: str = "/run/docker/plugins/cloudvol.sock"
    host_root: str = "/host"
    operation_timeout: float = 5.0
    operation_poll_interval: float = 0.1
    # GCE overrides; the metadata server is used for anything left unset
    gce_project: Optional[str] = None
    gce_zone: Optional[str] = None
    gce_instance: Optional[str] = None
    gce_credentials_file: Optional[str] = None


def _config_path() -> Path:
    env = os.environ.get("CLOUDVOL_CONFIG_PATH")
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def load_config() -> CloudvolConfig:
    """
    Load config from `CLOUDVOL_CONFIG_PATH` or `/etc/cloudvol/cloudvol.conf`.

    Missing files are not an error; defaults are returned.
    """
    parser = _read_ini(_config_path())

    main_section = parser["cloudvol"] if parser.has_section("cloudvol") else {}
    gce_section = parser["gce"] if parser.has_section("gce") else {}

    def _get(section: object, key: str, default: str) -> str:
        if isinstance(section, dict):
            return str(section.get(key, default)).strip()
        return str(section.get(key, fallback=default)).strip()

    def _get_int(section: object, key: str, default: int) -> int:
        raw = _get(section, key, str(default))
        try:
            return int(raw)
        except Exception:
            return default

    def _get_float(section: object, key: str, default: float) -> float:
        raw = _get(section, key, str(default))
        try:
            value = float(raw)
        except Exception:
            return default
        return value if value > 0 else default

    def _get_optional(section: object, key: str) -> Optional[str]:
        return _get(section, key, "") or None

    return CloudvolConfig(
        driver=_get(main_section, "driver", "gce"),
        mount_path=_get(main_section, "mount_path", "/mnt").rstrip("/") or "/",
        api_host=_get(main_section, "api_host", "127.0.0.1"),
        api_port=_get_int(main_section, "api_port", 8080),
        socket_path=_get(main_section, "socket_path", "/run/docker/plugins/cloudvol.sock"),
        host_root=_get(main_section, "host_root", "/host"),
        operation_timeout=_get_float(main_section, "operation_timeout", 5.0),
        operation_poll_interval=_get_float(main_section, "operation_poll_interval", 0.1),
        gce_project=_get_optional(gce_section, "project"),
        gce_zone=_get_optional(gce_section, "zone"),
        gce_instance=_get_optional(gce_section, "instance"),
        gce_credentials_file=_get_optional(gce_section, "credentials_file"),
    )
