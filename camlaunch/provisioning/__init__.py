"""Cloud Storage and Compute Engine provisioning steps."""

from camlaunch.provisioning.buckets import (
    create_missing,
    ensure_buckets,
    list_buckets,
    reconcile_buckets,
    required_buckets,
)
from camlaunch.provisioning.cloud_config import build_cloud_config, innodb_buffer_pool_size, validate_cloud_config
from camlaunch.provisioning.instance import build_instance_spec, get_instance, submit_instance
from camlaunch.provisioning.operations import wait_for_operation
from camlaunch.provisioning.types import Operation, OperationStatus

__all__ = [
    "Operation",
    "OperationStatus",
    "required_buckets",
    "reconcile_buckets",
    "list_buckets",
    "create_missing",
    "ensure_buckets",
    "innodb_buffer_pool_size",
    "validate_cloud_config",
    "build_cloud_config",
    "build_instance_spec",
    "submit_instance",
    "wait_for_operation",
    "get_instance",
]
