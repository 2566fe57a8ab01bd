"""Launch configuration: flag values, YAML defaults and local file reading."""

import logging
import os
from dataclasses import dataclass

import yaml

from camlaunch.errors import ConfigurationError, MissingCredentialFile, UnreadableCredentialFile

logger = logging.getLogger(__name__)

DEFAULT_ZONE = "us-central1-a"
DEFAULT_MACHINE_TYPE = "g1-small"
DEFAULT_INSTANCE_NAME = "camlistore-server"
DEFAULT_CLIENT_ID_FILE = "client-id.dat"
DEFAULT_CLIENT_SECRET_FILE = "client-secret.dat"
DEFAULT_POLL_INTERVAL = 2.0

HELP_CREATE_PROJECT = "Create new project: go to https://console.developers.google.com to create a new Project."
HELP_ENABLE_AUTH = (
    'Enable authentication: in your project console, navigate to "APIs and auth", "Credentials", '
    'click on "Create new Client ID" and pick "Installed application", with type "Other". '
    f"Copy the CLIENT ID to {DEFAULT_CLIENT_ID_FILE}, and the CLIENT SECRET to {DEFAULT_CLIENT_SECRET_FILE}"
)
HELP_ENABLE_APIS = (
    'Enable the project APIs: in your project console, navigate to "APIs and auth", "APIs". '
    'In the list, enable "Google Cloud Storage", "Google Cloud Storage JSON API", and "Google Compute Engine".'
)
GETTING_STARTED = "\n".join([HELP_CREATE_PROJECT, HELP_ENABLE_AUTH, HELP_ENABLE_APIS])

# YAML keys map 1:1 onto CLI flag destinations
CONFIG_FILE_KEYS = {
    "project",
    "zone",
    "machinetype",
    "instance_name",
    "ssh_public_key",
    "client_id_file",
    "client_secret_file",
    "token_cache_dir",
    "poll_interval",
}


@dataclass
class LaunchConfig:
    """Everything a single launch needs. Built once by the CLI and passed down."""

    project: str
    zone: str = DEFAULT_ZONE
    machine_type: str = DEFAULT_MACHINE_TYPE
    instance_name: str = DEFAULT_INSTANCE_NAME
    ssh_public_key: str | None = None
    client_id_file: str = DEFAULT_CLIENT_ID_FILE
    client_secret_file: str = DEFAULT_CLIENT_SECRET_FILE
    token_cache_dir: str = "."
    poll_interval: float = DEFAULT_POLL_INTERVAL

    @property
    def token_cache_path(self) -> str:
        return os.path.join(_expand_path(self.token_cache_dir), f"{self.project}-token.dat")

    @classmethod
    def from_args(cls, args):
        return cls(
            project=args.project,
            zone=args.zone,
            machine_type=args.machinetype,
            instance_name=args.instance_name,
            ssh_public_key=args.ssh_public_key or None,
            client_id_file=args.client_id_file,
            client_secret_file=args.client_secret_file,
            token_cache_dir=args.token_cache_dir,
            poll_interval=float(args.poll_interval),
        )


def load_config_file(config_path: str) -> dict:
    """Load flag defaults from a YAML file.

    Raises:
        ConfigurationError: the file is missing, is not valid YAML, is not a
            mapping, or names keys that are not launcher flags.
    """
    try:
        with open(_expand_path(config_path)) as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Config file '{config_path}' not found.") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Error reading config file '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML config '{config_path}': {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file '{config_path}' must contain a mapping, got {type(config).__name__}.")

    unknown = sorted(set(config) - CONFIG_FILE_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown key(s) in config file '{config_path}': {', '.join(unknown)}")
    logger.debug(f"Loaded defaults from {config_path}: {sorted(config)}")
    return config


def read_trimmed_file(path: str, hint: str = "") -> str:
    """Return the whitespace-trimmed contents of a small local file.

    Raises:
        MissingCredentialFile: the file does not exist.
        UnreadableCredentialFile: any other I/O error, or the file is not UTF-8 text.
    """
    try:
        with open(_expand_path(path)) as f:
            return f.read().strip()
    except FileNotFoundError as e:
        message = f"{path} does not exist."
        if hint:
            message = f"{message}\n{hint}"
        raise MissingCredentialFile(message) from e
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableCredentialFile(f"Error reading {path}: {e}") from e


def _expand_path(path: str) -> str:
    """Expand user home directory and environment variables in path."""
    return os.path.expanduser(os.path.expandvars(path))
