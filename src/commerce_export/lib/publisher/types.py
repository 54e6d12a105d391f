"""Publisher data types for object-storage uploads."""

from dataclasses import dataclass, field


@dataclass
class ConnectionTestResult:
    """Outcome of a lightweight storage capability check."""

    success: bool
    message: str
    buckets: list[str] = field(default_factory=list)


class ClientInitError(Exception):
    """Raised when the storage client cannot be created (e.g. missing credentials).

    Never retried.
    """
