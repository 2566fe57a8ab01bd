#!/usr/bin/env python3
"""Camlistore GCE launcher — CLI entrypoint."""

import argparse
import asyncio
import logging
import sys

from camlaunch.config import (
    DEFAULT_CLIENT_ID_FILE,
    DEFAULT_CLIENT_SECRET_FILE,
    DEFAULT_INSTANCE_NAME,
    DEFAULT_MACHINE_TYPE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_ZONE,
    GETTING_STARTED,
    LaunchConfig,
    load_config_file,
)
from camlaunch.errors import CamlaunchError
from camlaunch.launch import run_launch
from camlaunch.logging_setup import setup_cli_logging

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Create a Camlistore server on Google Compute Engine.",
        epilog=f"Getting started:\n{GETTING_STARTED}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="YAML file with defaults for any of the flags below")
    parser.add_argument("--project", default="", help="Name of the GCP project")
    parser.add_argument("--zone", default=DEFAULT_ZONE, help=f"GCE zone (default: {DEFAULT_ZONE})")
    parser.add_argument(
        "--machinetype",
        default=DEFAULT_MACHINE_TYPE,
        help=f"Machine type, e.g. n1-standard-1, f1-micro, g1-small (default: {DEFAULT_MACHINE_TYPE})",
    )
    parser.add_argument("--instance_name", default=DEFAULT_INSTANCE_NAME, help=f"Name of VM instance (default: {DEFAULT_INSTANCE_NAME})")
    parser.add_argument(
        "--ssh_public_key",
        default=None,
        help="SSH public key file to authorize. Can modify later in Google's web UI anyway.",
    )
    parser.add_argument("--client_id_file", default=DEFAULT_CLIENT_ID_FILE, help=f"File holding the OAuth client id (default: {DEFAULT_CLIENT_ID_FILE})")
    parser.add_argument(
        "--client_secret_file",
        default=DEFAULT_CLIENT_SECRET_FILE,
        help=f"File holding the OAuth client secret (default: {DEFAULT_CLIENT_SECRET_FILE})",
    )
    parser.add_argument("--token_cache_dir", default=".", help="Directory for the per-project token cache (default: .)")
    parser.add_argument("--poll_interval", type=float, default=DEFAULT_POLL_INTERVAL, help=argparse.SUPPRESS)
    return parser


def parse_args(argv=None):
    """Parse flags, taking defaults from --config when given.

    Explicit flags win over YAML values, which win over built-in defaults.
    """
    parser = build_parser()
    pre_args, _ = parser.parse_known_args(argv)
    if pre_args.config:
        parser.set_defaults(**load_config_file(pre_args.config))
    return parser.parse_args(argv)


def handle_launch(args):
    """Run one launch. Returns the process exit status."""
    if not args.project:
        logger.info("Missing --project flag.")
        logger.info(GETTING_STARTED)
        # Exits 0 like --help does; nothing was provisioned.
        return 0

    config = LaunchConfig.from_args(args)
    try:
        asyncio.run(run_launch(config))
    except CamlaunchError as e:
        logger.error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted.")
        return 130
    return 0


def main(argv=None):
    setup_cli_logging()
    try:
        args = parse_args(argv)
    except CamlaunchError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    sys.exit(handle_launch(args))


if __name__ == "__main__":
    main()
