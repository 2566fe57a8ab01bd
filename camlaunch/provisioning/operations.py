"""Zone operation polling."""

import asyncio
import logging

import httpx

from camlaunch.errors import OperationError, ProvisioningError
from camlaunch.provisioning.api import COMPUTE_API_URL, api_request, describe_http_error
from camlaunch.provisioning.types import Operation, OperationStatus

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0


async def get_zone_operation(client, project, zone, name):
    url = f"{COMPUTE_API_URL}/projects/{project}/zones/{zone}/operations/{name}"
    try:
        payload = await api_request(client, "GET", url)
    except (httpx.HTTPError, ValueError) as e:
        raise ProvisioningError(f"Failed to get op {name}: {describe_http_error(e)}") from e
    return Operation.from_api(payload)


async def wait_for_operation(client, project, zone, name, interval=POLL_INTERVAL):
    """Poll a zone operation every *interval* seconds until it is DONE.

    There is no timeout: a stuck operation keeps the run waiting until the
    process is killed.

    Returns:
        The DONE Operation.

    Raises:
        OperationError: the operation finished with errors, or reported a
            status other than PENDING, RUNNING or DONE.
        ProvisioningError: fetching the operation failed.
    """
    while True:
        await asyncio.sleep(interval)
        op = await get_zone_operation(client, project, zone, name)
        if op.status in (OperationStatus.PENDING, OperationStatus.RUNNING):
            logger.info(f"Waiting on operation {name} ({op.status.value})")
            continue
        if op.errors:
            for err in op.errors:
                logger.error(f"Error: {_format_operation_error(err)}")
            raise OperationError(f"Operation {name} failed with {len(op.errors)} error(s).", errors=op.errors, status=op.status.value)
        logger.info(f"Operation {name} done.")
        return op


def _format_operation_error(err):
    code = err.get("code", "UNKNOWN")
    message = err.get("message", "")
    location = err.get("location")
    if location:
        return f"{code} at {location}: {message}"
    return f"{code}: {message}"
