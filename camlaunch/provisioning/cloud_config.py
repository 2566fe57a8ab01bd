"""cloud-config (user-data) generation for the CoreOS server VM."""

import logging

from camlaunch.config import read_trimmed_file
from camlaunch.errors import ConfigTooLarge, ConfigurationError

logger = logging.getLogger(__name__)

# Compute Engine rejects metadata values over 32 KiB.
MAX_CLOUD_CONFIG_BYTES = 32 << 10

MIB = 1 << 20

# Machine type -> InnoDB buffer pool size. Camlistore loads its index into RAM
# at start-up anyway, so these only need to beat MySQL's 8 MiB default.
INNODB_BUFFER_POOL_SIZES = {
    "f1-micro": 32 * MIB,
    "g1-small": 64 * MIB,
}
DEFAULT_INNODB_BUFFER_POOL_SIZE = 128 * MIB

CLOUD_CONFIG_TEMPLATE = """\
#cloud-config
write_files:
  - path: /var/lib/camlistore/tmp/README
    permissions: 0644
    content: |
      This is the Camlistore /tmp directory.
  - path: /var/lib/camlistore/mysql/README
    permissions: 0644
    content: |
      This is the Camlistore MySQL data directory.
coreos:
  units:
    - name: cam-journal-gatewayd.service
      content: |
        [Unit]
        Description=Journal Gateway Service
        Requires=cam-journal-gatewayd.socket

        [Service]
        ExecStart=/usr/lib/systemd/systemd-journal-gatewayd
        User=systemd-journal-gateway
        Group=systemd-journal-gateway
        SupplementaryGroups=systemd-journal
        PrivateTmp=yes
        PrivateDevices=yes
        PrivateNetwork=yes
        ProtectSystem=full
        ProtectHome=yes

        [Install]
        Also=cam-journal-gatewayd.socket
    - name: cam-journal-gatewayd.socket
      command: start
      content: |
        [Unit]
        Description=Journal Gateway Service Socket

        [Socket]
        ListenStream=/run/camjournald.sock

        [Install]
        WantedBy=sockets.target
    - name: mysql.service
      command: start
      content: |
        [Unit]
        Description=MySQL
        After=docker.service
        Requires=docker.service

        [Service]
        ExecStartPre=/usr/bin/docker run --rm -v /opt/bin:/opt/bin ibuildthecloud/systemd-docker
        ExecStart=/opt/bin/systemd-docker run --rm --name %n -v /var/lib/camlistore/mysql:/mysql -e INNODB_BUFFER_POOL_SIZE={innodb_buffer_pool_size} camlistore/mysql
        RestartSec=1s
        Restart=always
        Type=notify
        NotifyAccess=all

        [Install]
        WantedBy=multi-user.target
    - name: camlistored.service
      command: start
      content: |
        [Unit]
        Description=Camlistore
        After=docker.service
        Requires=docker.service mysql.service

        [Service]
        ExecStartPre=/usr/bin/docker run --rm -v /opt/bin:/opt/bin ibuildthecloud/systemd-docker
        ExecStart=/opt/bin/systemd-docker run --rm -p 80:80 -p 443:443 --name %n -v /run/camjournald.sock:/run/camjournald.sock -v /var/lib/camlistore/tmp:/tmp --link=mysql.service:mysqldb camlistore/camlistored
        RestartSec=1s
        Restart=always
        Type=notify
        NotifyAccess=all

        [Install]
        WantedBy=multi-user.target
"""


def innodb_buffer_pool_size(machine_type):
    """InnoDB buffer pool size in bytes for a machine type. Defined for every input."""
    return INNODB_BUFFER_POOL_SIZES.get(machine_type, DEFAULT_INNODB_BUFFER_POOL_SIZE)


def render_cloud_config(machine_type):
    return CLOUD_CONFIG_TEMPLATE.format(innodb_buffer_pool_size=innodb_buffer_pool_size(machine_type))


def validate_cloud_config(text, limit=MAX_CLOUD_CONFIG_BYTES):
    """Raise ConfigTooLarge if *text* is over *limit* bytes (UTF-8)."""
    size = len(text.encode("utf-8"))
    if size > limit:
        raise ConfigTooLarge(size, limit)
    return size


def append_ssh_key(text, public_key):
    return text + f"\nssh_authorized_keys:\n    - {public_key.strip()}\n"


def read_ssh_public_key(path):
    """Return the trimmed public key in *path*, raising ConfigurationError if it cannot be read."""
    try:
        return read_trimmed_file(path)
    except ConfigurationError as e:
        raise ConfigurationError(f"SSH public key {path} could not be read: {e}") from e


def build_cloud_config(machine_type, ssh_key_path=None):
    """Render, size-check, then optionally authorize an SSH key.

    The size check runs before the key block is appended, so the returned
    text can exceed MAX_CLOUD_CONFIG_BYTES by the length of that block.
    """
    text = render_cloud_config(machine_type)
    size = validate_cloud_config(text)
    logger.info(f"cloud-config for {machine_type}: {size} bytes")
    if ssh_key_path:
        text = append_ssh_key(text, read_ssh_public_key(ssh_key_path))
        logger.info(f"Authorized SSH key from {ssh_key_path}")
    return text
