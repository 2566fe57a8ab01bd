"""Compute Engine instance: build the insert request, submit it, fetch the result."""

import logging

import httpx

from camlaunch.auth import SCOPES
from camlaunch.errors import ProvisioningError, SubmissionError
from camlaunch.provisioning.api import COMPUTE_API_URL, api_request, describe_http_error
from camlaunch.provisioning.buckets import blob_bucket_name, config_bucket_name
from camlaunch.provisioning.types import Operation

logger = logging.getLogger(__name__)

IMAGE_URL = f"{COMPUTE_API_URL}/projects/coreos-cloud/global/images/coreos-alpha-402-2-0-v20140807"
INSTANCE_DESCRIPTION = "Camlistore server"
FIREWALL_TAGS = ["http-server", "https-server"]

# Placeholder credentials for the server UI until real ones are provisioned.
DEFAULT_USERNAME = "test"
DEFAULT_PASSWORD = "insecure"


def project_url(project):
    return f"{COMPUTE_API_URL}/projects/{project}"


def machine_type_url(project, zone, machine_type):
    return f"{project_url(project)}/zones/{zone}/machineTypes/{machine_type}"


def _instances_url(project, zone):
    return f"{project_url(project)}/zones/{zone}/instances"


def build_instance_spec(project, zone, machine_type, instance_name, cloud_config):
    """Build the Instance resource for the insert call.

    The result depends only on the arguments; the image and the service
    account scopes are fixed.
    """
    return {
        "name": instance_name,
        "description": INSTANCE_DESCRIPTION,
        "machineType": machine_type_url(project, zone, machine_type),
        "disks": [
            {
                "autoDelete": True,
                "boot": True,
                "type": "PERSISTENT",
                "initializeParams": {
                    "diskName": f"{instance_name}-coreos-stateless-pd",
                    "sourceImage": IMAGE_URL,
                },
            }
        ],
        "tags": {"items": list(FIREWALL_TAGS)},
        "metadata": {
            "items": [
                {"key": "camlistore-username", "value": DEFAULT_USERNAME},
                {"key": "camlistore-password", "value": DEFAULT_PASSWORD},
                {"key": "camlistore-blob-bucket", "value": f"gs://{blob_bucket_name(project)}"},
                {"key": "camlistore-config-bucket", "value": f"gs://{config_bucket_name(project)}"},
                {"key": "user-data", "value": cloud_config},
            ]
        },
        "networkInterfaces": [
            {
                "accessConfigs": [{"type": "ONE_TO_ONE_NAT", "name": "External NAT"}],
                "network": f"{project_url(project)}/global/networks/default",
            }
        ],
        "serviceAccounts": [{"email": "default", "scopes": list(SCOPES)}],
    }


async def submit_instance(client, project, zone, spec):
    """POST the insert request and return the zone Operation it starts.

    Raises:
        SubmissionError: the request failed or the response is not an Operation.
    """
    logger.info(f"Creating instance '{spec['name']}' in zone '{zone}'...")
    try:
        payload = await api_request(client, "POST", _instances_url(project, zone), body=spec)
    except (httpx.HTTPError, ValueError) as e:
        raise SubmissionError(f"Failed to create instance: {describe_http_error(e)}") from e
    if not payload.get("name"):
        raise SubmissionError(f"Failed to create instance: response is not an operation: {payload}")
    op = Operation.from_api(payload)
    logger.info(f"Created. Waiting on operation {op.name}")
    return op


async def get_instance(client, project, zone, name):
    """Fetch the full Instance resource."""
    try:
        return await api_request(client, "GET", f"{_instances_url(project, zone)}/{name}")
    except (httpx.HTTPError, ValueError) as e:
        raise ProvisioningError(f"Error getting instance after creation: {describe_http_error(e)}") from e
