"""
FastAPI application implementing the Docker volume plugin protocol.

Every endpoint answers HTTP 200; failures are reported in the `Err` field as
the protocol requires.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from cloudvol.api.models import (
    ActivateResponse,
    CapabilitiesResponse,
    CreateRequest,
    ErrorResponse,
    GetResponse,
    ListResponse,
    MountpointResponse,
    MountRequest,
    VolumeRequest,
)
from cloudvol.cli.lib.validators import validate_name
from cloudvol.driver.base import VolumeDriver
from cloudvol.driver.exceptions import AlreadyMountedError, CloudvolException

app = FastAPI(title="cloudvol", description="Docker volume plugin for cloud block storage", version="0.1.0")
logger = logging.getLogger(__name__)


def get_driver(request: Request) -> VolumeDriver:
    """Return the volume driver installed on the application."""
    driver = getattr(request.app.state, "driver", None)
    if driver is None:
        raise RuntimeError("volume driver is not configured")
    return driver


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    request_id = str(uuid.uuid4())
    logger.exception("Unhandled error (request_id=%s, path=%s)", request_id, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"Err": f"internal error (request_id={request_id})"},
    )


@app.post("/Plugin.Activate", response_model=ActivateResponse)
def activate() -> Dict[str, Any]:
    """
    Plugin handshake.
    """
    logger.info("REQUEST: Activate")
    return {"implements": ["VolumeDriver"]}


@app.post("/VolumeDriver.Capabilities", response_model=CapabilitiesResponse)
def capabilities() -> Dict[str, Any]:
    """
    Report driver capabilities. Volumes are visible cluster-wide.
    """
    logger.info("REQUEST: Capabilities")
    return {"capabilities": {"scope": "global"}}


@app.post("/VolumeDriver.Create", response_model=ErrorResponse)
def create_volume(req: CreateRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Create a new volume.
    """
    logger.info("REQUEST: Create (name=%s, opts=%s)", req.name, req.options)
    try:
        validate_name(req.name)
        driver.create(req.name, req.options or {})
    except (CloudvolException, ValueError) as e:
        logger.error("RESPONSE: Create: error (name=%s): %s", req.name, e)
        return {"err": f"error creating volume '{req.name}': {e}"}
    return {"err": ""}


@app.post("/VolumeDriver.Remove", response_model=ErrorResponse)
def remove_volume(req: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Delete a volume.
    """
    logger.info("REQUEST: Remove (name=%s)", req.name)
    try:
        driver.remove(req.name)
    except CloudvolException as e:
        logger.error("RESPONSE: Remove: error (name=%s): %s", req.name, e)
        return {"err": f"error removing volume '{req.name}': {e}"}
    return {"err": ""}


@app.post("/VolumeDriver.List", response_model=ListResponse)
def list_volumes(driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    List all volumes.
    """
    logger.info("REQUEST: List")
    try:
        volumes = driver.list()
    except CloudvolException as e:
        logger.error("RESPONSE: List: error: %s", e)
        return {"err": f"error listing volumes: {e}"}

    for vol in volumes:
        logger.info("RESPONSE: List: found volume (name=%s, mount=%s, ready=%s)", vol.name, vol.path, vol.ready)
    return {"volumes": [{"name": vol.name, "mountpoint": vol.path} for vol in volumes], "err": ""}


@app.post("/VolumeDriver.Get", response_model=GetResponse, response_model_exclude_none=True)
def get_volume(req: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Get a single volume.
    """
    logger.info("REQUEST: Get (name=%s)", req.name)
    try:
        vol = driver.get(req.name)
    except CloudvolException as e:
        logger.error("RESPONSE: Get: error (name=%s): %s", req.name, e)
        return {"err": f"error getting volume '{req.name}': {e}"}

    logger.info("RESPONSE: Get: found (name=%s, mount=%s, ready=%s)", vol.name, vol.path, vol.ready)
    return {"volume": {"name": vol.name, "mountpoint": vol.path}, "err": ""}


@app.post("/VolumeDriver.Path", response_model=MountpointResponse)
def volume_path(req: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Get the mount point of a volume.
    """
    logger.info("REQUEST: Path (name=%s)", req.name)
    try:
        vol = driver.get(req.name)
    except CloudvolException as e:
        logger.error("RESPONSE: Path: error (name=%s): %s", req.name, e)
        return {"err": f"error getting volume '{req.name}': {e}"}

    logger.info("RESPONSE: Path (name=%s, mount=%s)", req.name, vol.path)
    return {"mountpoint": vol.path, "err": ""}


@app.post("/VolumeDriver.Mount", response_model=MountpointResponse)
def mount_volume(req: MountRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Mount a volume onto the local file system.
    """
    logger.info("REQUEST: Mount (name=%s, id=%s)", req.name, req.id)
    try:
        path = driver.mount(req.name)
    except AlreadyMountedError as e:
        logger.error("RESPONSE: Mount: already mounted (name=%s, mount=%s)", req.name, e.path)
        return {"mountpoint": e.path, "err": f"error mounting volume '{req.name}': {e}"}
    except CloudvolException as e:
        logger.error("RESPONSE: Mount: error mounting (name=%s): %s", req.name, e)
        return {"err": f"error mounting volume '{req.name}': {e}"}

    logger.info("RESPONSE: Mount: mounted (name=%s, mount=%s)", req.name, path)
    return {"mountpoint": path, "err": ""}


@app.post("/VolumeDriver.Unmount", response_model=ErrorResponse)
def unmount_volume(req: MountRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Remove a volume from the local file system.
    """
    logger.info("REQUEST: Unmount (name=%s, id=%s)", req.name, req.id)
    try:
        driver.unmount(req.name)
    except CloudvolException as e:
        logger.error("RESPONSE: Unmount: error unmounting (name=%s): %s", req.name, e)
        return {"err": f"error unmounting volume '{req.name}': {e}"}

    logger.info("RESPONSE: Unmount: done (name=%s)", req.name)
    return {"err": ""}
