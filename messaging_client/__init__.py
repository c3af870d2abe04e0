"""
Client for the taskhub messaging API.

`ThreadApiClient` speaks the REST API with requests, `AsyncThreadApi` exposes
the same calls as coroutines, and the surfaces keep per-thread state for an
inbox view and a project view.
"""

from .api import AsyncThreadApi, ThreadApiClient
from .errors import (
    AuthorizationError,
    ClientError,
    StateError,
    TransportError,
    ValidationError,
)
from .state import OperationResult, ThreadState
from .surfaces import InboxSurface, ProjectSurface

__all__ = [
    "AsyncThreadApi",
    "AuthorizationError",
    "ClientError",
    "InboxSurface",
    "OperationResult",
    "ProjectSurface",
    "StateError",
    "ThreadApiClient",
    "ThreadState",
    "TransportError",
    "ValidationError",
]
