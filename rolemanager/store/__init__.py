"""Data access layer: backing sources, cache, fault injection and persistence."""

from .errors import (
    OperationFailedError,
    SimulatedFailureError,
    SourceUnavailableError,
    UserNotFoundError,
)
from .faults import FaultInjector, Latency
from .persistence import ExportSink, LogSink, PersistenceSink
from .sources import (
    JSONSource,
    MemorySource,
    SourceBackend,
    UserRoleSource,
    XMLSource,
    create_source,
)
from .store import CachePolicy, RoleStore

__all__ = [
    "CachePolicy",
    "ExportSink",
    "FaultInjector",
    "JSONSource",
    "Latency",
    "LogSink",
    "MemorySource",
    "OperationFailedError",
    "PersistenceSink",
    "RoleStore",
    "SimulatedFailureError",
    "SourceBackend",
    "SourceUnavailableError",
    "UserNotFoundError",
    "UserRoleSource",
    "XMLSource",
    "create_source",
]
