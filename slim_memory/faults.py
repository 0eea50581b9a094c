"""
slim_memory — Fault taxonomy.

Failures are raised as structured fault objects with a stable code,
a severity, a domain and a retry hint, so callers and the CLI can
report them uniformly.

Only configuration and connection problems are faults. A missing key
or a rejected write is never raised: backends report those through
``None`` / ``False`` / ``{}`` return values.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How loudly a fault should be reported."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"     # Caller cannot continue


class FaultDomain(str, Enum):
    """Functional area a fault belongs to."""
    MEMORY = "memory"


class Fault(Exception):
    """
    Structured exception base.

    Attributes:
        code: Stable identifier such as ``CACHE_CONNECTION_FAILED``
        message: Human-readable description
        domain: Area the fault belongs to
        severity: Reporting level
        retryable: Whether repeating the operation may succeed
        metadata: Extra context for diagnostics
    """

    def __init__(
        self,
        code: str,
        message: str,
        *,
        domain: FaultDomain,
        severity: Severity = Severity.ERROR,
        retryable: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.domain = domain
        self.severity = severity
        self.retryable = retryable
        self.metadata = dict(metadata or {})

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, severity={self.severity.value})"

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for CLI output."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "metadata": self.metadata,
        }


class MemoryFault(Fault):
    """Base class for every fault raised by this package."""

    def __init__(self, code: str, message: str, **kwargs: Any):
        super().__init__(code, message, domain=FaultDomain.MEMORY, **kwargs)


class CacheConnectionFault(MemoryFault, ConnectionError):
    """
    No backend could be reached.

    Raised when no pool is configured in any role, or when a backend
    fails its liveness probe while being constructed. Subclasses the
    builtin ``ConnectionError`` so plain ``except ConnectionError``
    handlers keep working.
    """

    def __init__(self, backend: str, reason: str):
        super().__init__(
            "CACHE_CONNECTION_FAILED",
            f"Cache backend '{backend}' connection failed: {reason}",
            severity=Severity.ERROR,
            retryable=True,
            metadata={"backend": backend, "reason": reason},
        )


class CacheConfigFault(MemoryFault):
    """Invalid configuration: bad strategy, unknown serializer, missing default."""

    def __init__(self, reason: str):
        super().__init__(
            "CACHE_CONFIG_INVALID",
            f"Invalid cache configuration: {reason}",
            severity=Severity.FATAL,
            metadata={"reason": reason},
        )


class CacheSerializationFault(MemoryFault):
    """A value could not be encoded or decoded."""

    def __init__(self, operation: str, reason: str):
        super().__init__(
            "CACHE_SERIALIZATION_FAILED",
            f"Cache {operation} failed: {reason}",
            severity=Severity.WARN,
            metadata={"operation": operation, "reason": reason},
        )
