# app/transport/ws_manager.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Conn:
    pid: str
    ws: WebSocket


class WSManager:
    """
    In-memory connection registry.
    - session_id -> pid -> websocket
    Transport-only: no store, no domain rules. Snapshots are pushed by each
    connection's own store subscription; this registry exists to close sockets.
    """
    def __init__(self) -> None:
        self._sessions: Dict[str, Dict[str, Conn]] = {}
        self._lock = asyncio.Lock()

    async def add(self, session_id: str, pid: str, ws: WebSocket) -> None:
        async with self._lock:
            self._sessions.setdefault(session_id, {})[pid] = Conn(pid=pid, ws=ws)

    async def remove(self, session_id: str, pid: str, ws: WebSocket | None = None) -> None:
        async with self._lock:
            conns = self._sessions.get(session_id)
            if not conns:
                return
            conn = conns.get(pid)
            # a newer socket for the same participant may have replaced this one
            if conn is not None and (ws is None or conn.ws is ws):
                conns.pop(pid, None)
            if not conns:
                self._sessions.pop(session_id, None)

    async def pids(self, session_id: str) -> List[str]:
        async with self._lock:
            return list(self._sessions.get(session_id, {}).keys())

    async def close_pid(self, session_id: str, pid: str, code: int = 4000, reason: str = "kicked") -> None:
        """
        Close a specific participant's websocket and remove from registry.
        """
        async with self._lock:
            conn = self._sessions.get(session_id, {}).get(pid)
        if conn is None:
            return
        try:
            await conn.ws.close(code=code, reason=reason)
        except RuntimeError:
            # already closed by the client
            logger.debug("Socket for %s in session %s was already closed", pid, session_id)
        await self.remove(session_id, pid)

    async def close_session(self, session_id: str, code: int = 4000, reason: str = "session_closed") -> None:
        for pid in await self.pids(session_id):
            await self.close_pid(session_id, pid, code=code, reason=reason)

    async def session_size(self, session_id: str) -> int:
        async with self._lock:
            return len(self._sessions.get(session_id, {}))
