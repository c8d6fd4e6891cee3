"""GCE persistent disk implementation of the cloud disk service.

Useful references while maintaining this module:
- REST API: https://cloud.google.com/compute/docs/reference/rest/v1
- Metadata server: https://cloud.google.com/compute/docs/metadata/overview
"""

import logging
import os
from typing import Any, Callable, Dict, List, Optional

import google.auth
import requests
from google.oauth2 import service_account
from googleapiclient import discovery
from googleapiclient.errors import HttpError

from cloudvol.cli.lib.config import CloudvolConfig
from cloudvol.cli.lib.fs import Filesystem

from .exceptions import NotFoundError, ProviderError
from .operations import OperationHandle, OperationWaiter
from .reconciler import VolumeReconciler
from .services import (
    AttachedDisk,
    CloudDiskService,
    Disk,
    DiskSpec,
    DiskType,
    Instance,
    InstanceIdentity,
)

LOG = logging.getLogger(__name__)

# GCE instances have a metadata server that can be queried for information
# about the instance the code is running on.
METADATA_SERVER = "http://169.254.169.254/computeMetadata/v1/"
METADATA_HEADERS = {"Metadata-Flavor": "Google"}
METADATA_TIMEOUT = 3

COMPUTE_SCOPE = "https://www.googleapis.com/auth/compute"
PAGE_SIZE = 500


def get_metadata_path(path: str) -> str:
    """Request a path from the GCE metadata server.

    Args:
        path: Path relative to the metadata root (e.g., "instance/zone")

    Returns:
        The value reported by the metadata server

    Raises:
        ProviderError: Not on GCE or the metadata server cannot be contacted
    """
    try:
        response = requests.get(METADATA_SERVER + path, headers=METADATA_HEADERS, timeout=METADATA_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise ProviderError(f"GCE: not on GCE or can't contact metadata server: {e}", stage="setup")

    if response.status_code != 200:
        raise ProviderError(
            f"GCE: metadata server returned {response.status_code} for path {path}", stage="setup"
        )
    return response.text.strip()


def get_instance_identity(
    project: Optional[str] = None,
    zone: Optional[str] = None,
    instance: Optional[str] = None,
) -> InstanceIdentity:
    """Detect the identity of the local instance.

    Explicit values win; anything left unset is read from the metadata server.
    """
    if project is None:
        project = get_metadata_path("project/project-id")
    if zone is None:
        # "projects/<project-number>/zones/us-central1-f" -> "us-central1-f"
        zone = get_metadata_path("instance/zone").split("/")[-1]
    if instance is None:
        instance = get_metadata_path("instance/name")

    LOG.info("GCE: detected instance parameters (instance=%s, zone=%s, project=%s)", instance, zone, project)
    return InstanceIdentity(project=project, zone=zone, instance=instance)


def gce_credentials(credentials_file: Optional[str] = None):
    """Build credentials for the compute API.

    Args:
        credentials_file: Service account JSON key. When omitted,
            GOOGLE_APPLICATION_CREDENTIALS or the instance default service
            account is used.
    """
    if credentials_file:
        LOG.info("GCE: using credentials from %s", credentials_file)
        return service_account.Credentials.from_service_account_file(credentials_file, scopes=[COMPUTE_SCOPE])

    env_file = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    if env_file:
        LOG.info("GCE: using credentials from GOOGLE_APPLICATION_CREDENTIALS (%s)", env_file)
    else:
        LOG.info("GCE: using instance default credentials")

    credentials, _ = google.auth.default(scopes=[COMPUTE_SCOPE])
    return credentials


class GCEDiskService(CloudDiskService):
    """Cloud disk service backed by the GCE compute v1 API.

    Args:
        compute: Compute API resource built by googleapiclient.discovery
        project: Project the disks live in
        zone: Zone the disks live in
        page_size: Maximum results per list page
    """

    def __init__(self, compute: Any, project: str, zone: str, page_size: int = PAGE_SIZE):
        self._compute = compute
        self.project = project
        self.zone = zone
        self.page_size = page_size

    def list_disks(self) -> List[Disk]:
        items = self._list_all(self._compute.disks().list, "listing disks")
        return [self._to_disk(item) for item in items]

    def get_disk(self, name: str) -> Disk:
        response = self._execute(
            self._compute.disks().get(project=self.project, zone=self.zone, disk=name),
            f"getting disk '{name}'",
            not_found=f"disk '{name}' not found",
        )
        return self._to_disk(response)

    def attach_disk(self, instance: str, disk: Disk) -> OperationHandle:
        body = {
            "deviceName": disk.name,
            "source": disk.self_link,
            "autoDelete": False,
            "boot": False,
        }
        response = self._execute(
            self._compute.instances().attachDisk(
                project=self.project, zone=self.zone, instance=instance, body=body
            ),
            f"attaching disk '{disk.name}' to '{instance}'",
        )
        return self._to_operation(response)

    def detach_disk(self, instance: str, device_name: str) -> OperationHandle:
        response = self._execute(
            self._compute.instances().detachDisk(
                project=self.project, zone=self.zone, instance=instance, deviceName=device_name
            ),
            f"detaching disk '{device_name}' from '{instance}'",
        )
        return self._to_operation(response)

    def create_disk(self, spec: DiskSpec) -> OperationHandle:
        body: Dict[str, Any] = {"name": spec.name, "sizeGb": str(spec.size_gb)}
        if spec.type_link:
            body["type"] = spec.type_link
        response = self._execute(
            self._compute.disks().insert(project=self.project, zone=self.zone, body=body),
            f"creating disk '{spec.name}'",
        )
        return self._to_operation(response)

    def delete_disk(self, name: str) -> OperationHandle:
        response = self._execute(
            self._compute.disks().delete(project=self.project, zone=self.zone, disk=name),
            f"deleting disk '{name}'",
            not_found=f"disk '{name}' not found",
        )
        return self._to_operation(response)

    def list_disk_types(self) -> List[DiskType]:
        items = self._list_all(self._compute.diskTypes().list, "listing disk types")
        return [DiskType(name=item["name"], self_link=item.get("selfLink", "")) for item in items]

    def get_instance(self, name: str) -> Instance:
        response = self._execute(
            self._compute.instances().get(project=self.project, zone=self.zone, instance=name),
            f"getting instance '{name}'",
            not_found=f"instance '{name}' not found",
        )
        return Instance(
            name=response["name"],
            self_link=response.get("selfLink", ""),
            disks=[
                AttachedDisk(device_name=attachment.get("deviceName", ""), source=attachment.get("source", ""))
                for attachment in response.get("disks", [])
            ],
        )

    def get_operation(self, handle: OperationHandle) -> OperationHandle:
        response = self._execute(
            self._compute.zoneOperations().get(project=self.project, zone=self.zone, operation=handle.name),
            f"getting operation '{handle.name}'",
        )
        return self._to_operation(response)

    def _list_all(self, method: Callable[..., Any], what: str) -> List[Dict[str, Any]]:
        """Collect the items of every page of a list call."""
        items: List[Dict[str, Any]] = []
        page_token = None
        while True:
            response = self._execute(
                method(project=self.project, zone=self.zone, maxResults=self.page_size, pageToken=page_token),
                what,
            )
            items.extend(response.get("items", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                return items

    def _execute(self, request: Any, what: str, not_found: Optional[str] = None) -> Dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            if not_found and e.resp.status == 404:
                raise NotFoundError(not_found)
            raise ProviderError(f"GCE: error {what}: {e}")
        except Exception as e:
            raise ProviderError(f"GCE: error {what}: {e}")

    @staticmethod
    def _to_disk(item: Dict[str, Any]) -> Disk:
        size = item.get("sizeGb")
        return Disk(
            name=item["name"],
            self_link=item.get("selfLink", ""),
            users=list(item.get("users", [])),
            size_gb=int(size) if size is not None else None,
            type=item.get("type", ""),
        )

    @staticmethod
    def _to_operation(item: Dict[str, Any]) -> OperationHandle:
        return OperationHandle(
            name=item["name"],
            target_link=item.get("targetLink", ""),
            status=item.get("status", "PENDING"),
            errors=list(item.get("error", {}).get("errors", [])),
        )


def gce_from_configuration(cfg: CloudvolConfig, filesystem: Filesystem) -> VolumeReconciler:
    """Build a GCE-backed volume driver from configuration.

    Args:
        cfg: Loaded configuration
        filesystem: Filesystem executor used for local mounts

    Returns:
        A VolumeReconciler bound to the local instance

    Raises:
        ProviderError: Instance identity or API client cannot be set up
    """
    identity = get_instance_identity(project=cfg.gce_project, zone=cfg.gce_zone, instance=cfg.gce_instance)

    try:
        credentials = gce_credentials(cfg.gce_credentials_file)
        compute = discovery.build("compute", "v1", credentials=credentials, cache_discovery=False)
    except Exception as e:
        raise ProviderError(f"GCE: error creating client: {e}", stage="setup")

    service = GCEDiskService(compute, project=identity.project, zone=identity.zone)
    waiter = OperationWaiter(service, timeout=cfg.operation_timeout, interval=cfg.operation_poll_interval)
    return VolumeReconciler(
        service=service,
        filesystem=filesystem,
        identity=identity,
        mount_path=cfg.mount_path,
        waiter=waiter,
    )
