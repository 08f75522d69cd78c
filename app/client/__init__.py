from __future__ import annotations

from .local_state import LocalState, LocalStateFile, PendingLeave
from .session_client import LocalSessionClient, open_local_client

__all__ = [
    "LocalSessionClient",
    "LocalState",
    "LocalStateFile",
    "PendingLeave",
    "open_local_client",
]
