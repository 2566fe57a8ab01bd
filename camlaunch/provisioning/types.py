"""Shared data types for Compute Engine operations."""

from dataclasses import dataclass, field
from enum import Enum

from camlaunch.errors import OperationError


class OperationStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"


@dataclass
class Operation:
    """A zone operation as returned by the Compute Engine API."""

    name: str
    status: OperationStatus
    errors: list[dict] = field(default_factory=list)
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def done(self) -> bool:
        return self.status is OperationStatus.DONE

    @classmethod
    def from_api(cls, payload: dict) -> "Operation":
        """Parse an Operation resource.

        Raises:
            OperationError: the status is not PENDING, RUNNING or DONE.
        """
        name = payload.get("name", "")
        raw_status = payload.get("status")
        try:
            status = OperationStatus(raw_status)
        except ValueError:
            raise OperationError(f"Unknown status {raw_status!r} for operation {name}: {payload}", status=raw_status) from None
        errors = (payload.get("error") or {}).get("errors") or []
        return cls(name=name, status=status, errors=list(errors), raw=payload)
