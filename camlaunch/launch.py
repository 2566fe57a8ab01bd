"""One launch run: authenticate, ensure buckets, create the VM, report it.

Every step raises a ``CamlaunchError`` subclass on failure. Nothing is
rolled back: buckets created before a later failure stay in the project.
"""

import json
import logging

from camlaunch.auth import TokenCache, authenticate, authorized_client, load_client_credentials
from camlaunch.provisioning.buckets import ensure_buckets
from camlaunch.provisioning.cloud_config import build_cloud_config
from camlaunch.provisioning.instance import build_instance_spec, get_instance, submit_instance
from camlaunch.provisioning.operations import wait_for_operation

logger = logging.getLogger(__name__)


async def run_launch(config, prompt=input, transport=None):
    """Provision a Camlistore server described by *config*.

    Args:
        config: LaunchConfig for this run.
        prompt: called once for the auth code when no token is cached.
        transport: optional httpx transport for every API call.

    Returns:
        The created instance resource (dict).
    """
    credentials = load_client_credentials(config.client_id_file, config.client_secret_file)
    token = await authenticate(credentials, TokenCache(config.token_cache_path), prompt=prompt, transport=transport)

    # Local input is checked before anything is created in the project.
    cloud_config = build_cloud_config(config.machine_type, config.ssh_public_key)

    async with authorized_client(token, transport=transport) as client:
        await ensure_buckets(client, config.project)

        spec = build_instance_spec(
            config.project,
            config.zone,
            config.machine_type,
            config.instance_name,
            cloud_config,
        )
        op = await submit_instance(client, config.project, config.zone, spec)
        await wait_for_operation(client, config.project, config.zone, op.name, interval=config.poll_interval)
        logger.info("Success.")

        instance = await get_instance(client, config.project, config.zone, config.instance_name)

    logger.info(f"Instance: {json.dumps(instance, indent=4)}")
    return instance
