"""
Pydantic models for Docker volume plugin requests and responses.

The plugin protocol uses capitalized JSON keys; fields are snake_case with
aliases for the wire names.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PluginModel(BaseModel):
    """Base model accepting either wire names or field names."""

    model_config = ConfigDict(populate_by_name=True)


# Requests


class VolumeRequest(PluginModel):
    """Request naming a volume (Remove, Get, Path)."""

    name: str = Field(..., alias="Name", min_length=1)


class CreateRequest(VolumeRequest):
    """Request model for creating a volume."""

    options: Optional[Dict[str, str]] = Field(None, alias="Opts")


class MountRequest(VolumeRequest):
    """Request model for mounting or unmounting a volume."""

    id: str = Field("", alias="ID", description="Caller (container) ID")


# Responses


class PluginVolume(PluginModel):
    """Volume as reported to the container runtime."""

    name: str = Field(..., alias="Name")
    mountpoint: str = Field("", alias="Mountpoint")


class Capability(PluginModel):
    scope: str = Field("global", alias="Scope")


class ActivateResponse(PluginModel):
    implements: List[str] = Field(default_factory=lambda: ["VolumeDriver"], alias="Implements")


class CapabilitiesResponse(PluginModel):
    capabilities: Capability = Field(default_factory=Capability, alias="Capabilities")


class ErrorResponse(PluginModel):
    """Response carrying only an error string (empty on success)."""

    err: str = Field("", alias="Err")


class MountpointResponse(ErrorResponse):
    mountpoint: str = Field("", alias="Mountpoint")


class GetResponse(ErrorResponse):
    volume: Optional[PluginVolume] = Field(None, alias="Volume")


class ListResponse(ErrorResponse):
    volumes: List[PluginVolume] = Field(default_factory=list, alias="Volumes")
