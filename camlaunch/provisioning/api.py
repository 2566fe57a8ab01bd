"""Thin JSON helpers over the Google Cloud Storage and Compute Engine REST APIs."""

import json
import logging

import httpx

logger = logging.getLogger(__name__)

STORAGE_API_URL = "https://storage.googleapis.com/storage/v1"
COMPUTE_API_URL = "https://www.googleapis.com/compute/v1"


async def api_request(client, method, url, params=None, body=None):
    """Make one authorized request and return the parsed JSON body.

    *client* is the httpx client from ``camlaunch.auth.authorized_client``.
    Transport and HTTP errors propagate as ``httpx.HTTPError``; callers wrap
    them in the error type for their step.
    """
    logger.debug(f"{method} {url} params={params}")
    if body is not None:
        logger.debug(f"payload: {json.dumps(body, indent=2)}")
    resp = await client.request(method, url, params=params, json=body)
    resp.raise_for_status()
    if not resp.content:
        return {}
    return resp.json()


def describe_http_error(error: Exception) -> str:
    """One-line description of a failed request, including the API's message if any."""
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        message = response.text.strip()
        try:
            message = response.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            pass
        return f"HTTP {response.status_code}: {message}"
    return f"{type(error).__name__}: {error}"
