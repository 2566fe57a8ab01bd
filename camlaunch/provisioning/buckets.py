"""Cloud Storage buckets: work out which are missing and create them concurrently."""

import asyncio
import logging

import httpx

from camlaunch.errors import ProvisioningError
from camlaunch.provisioning.api import STORAGE_API_URL, api_request, describe_http_error

logger = logging.getLogger(__name__)


def blob_bucket_name(project):
    return f"{project}-camlistore-blobs"


def config_bucket_name(project):
    return f"{project}-camlistore-config"


def required_buckets(project):
    """Bucket names the server needs. Globally unique because the project id is."""
    return {blob_bucket_name(project), config_bucket_name(project)}


def reconcile_buckets(existing, required):
    """Return the required bucket names that do not exist yet."""
    return set(required) - set(existing)


async def list_buckets(client, project):
    """Return the names of all buckets in *project*, following pagination."""
    names = []
    params = {"project": project}
    while True:
        try:
            page = await api_request(client, "GET", f"{STORAGE_API_URL}/b", params=params)
        except (httpx.HTTPError, ValueError) as e:
            raise ProvisioningError(f"Error listing buckets: {describe_http_error(e)}") from e
        names.extend(item["name"] for item in page.get("items", []))
        page_token = page.get("nextPageToken")
        if not page_token:
            return names
        params = {"project": project, "pageToken": page_token}


async def insert_bucket(client, project, name):
    logger.info(f"Creating bucket {name}")
    try:
        bucket = await api_request(client, "POST", f"{STORAGE_API_URL}/b", params={"project": project}, body={"name": name})
    except (httpx.HTTPError, ValueError) as e:
        raise ProvisioningError(f"Error creating bucket {name}: {describe_http_error(e)}") from e
    logger.info(f"Created bucket {name} (id={bucket.get('id', name)}, location={bucket.get('location', '?')})")
    return bucket


async def create_missing(client, project, names):
    """Create every bucket in *names* concurrently and wait for all of them.

    Tasks are independent, so one failure does not cancel the others. Once
    every task has finished, each failure is logged and the first one is
    raised.

    Returns:
        List of created bucket resources, in sorted name order.
    """
    names = sorted(names)
    if not names:
        return []

    logger.info(f"Need to create buckets: {', '.join(names)}")
    results = await asyncio.gather(
        *(insert_bucket(client, project, name) for name in names),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    for failure in failures:
        logger.error(str(failure))
    if failures:
        first = failures[0]
        if isinstance(first, ProvisioningError):
            raise first
        raise ProvisioningError(f"Error creating buckets: {first}") from first
    return results


async def ensure_buckets(client, project):
    """Make sure both required buckets exist. Returns the names that were created."""
    existing = await list_buckets(client, project)
    missing = reconcile_buckets(existing, required_buckets(project))
    if not missing:
        logger.info("Buckets already exist.")
    await create_missing(client, project, missing)
    return sorted(missing)
