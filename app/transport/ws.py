# app/transport/ws.py
from __future__ import annotations

import ipaddress
import logging
import uuid
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.settings import get_settings
from app.domain.lifecycle.handlers import handle_disconnect
from app.domain.session.view import build_view
from app.store.models import SessionRecord
from app.store.subscription import Subscription
from app.transport.dispatcher import dispatch_message
from app.transport.protocols import OutHello, OutRemoved, OutSessionSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    settings = get_settings()
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}

    origin = websocket.headers.get("origin")
    if origin is not None:
        if origin in allowed:
            return True
        if settings.WS_ALLOW_LAN_ORIGINS:
            o = urlparse(origin)
            host = o.hostname or ""
            port = o.port
            if _is_private_ip(host) and port == 5173:
                return True
            await websocket.close(code=1008)
            return False
        await websocket.close(code=1008)
        return False
    return True


class SessionBinding:
    """
    Ties one websocket to at most one (session, participant) pair.
    While bound, every store update is pushed as that participant's view.
    """

    def __init__(self, app, websocket: WebSocket) -> None:
        self.app = app
        self.ws = websocket
        self.session_id: Optional[str] = None
        self.pid: Optional[str] = None
        self._sub: Optional[Subscription] = None

    async def bind(self, session_id: str, pid: str) -> None:
        await self.unbind()
        self.session_id = session_id
        self.pid = pid
        await self.app.state.wsman.add(session_id, pid, self.ws)
        sub = await self.app.state.store.subscribe(session_id, self._push)
        if self.session_id != session_id:
            # initial snapshot already removed us
            await sub.unsubscribe()
            return
        self._sub = sub

    async def unbind(self) -> None:
        sub, self._sub = self._sub, None
        session_id, pid = self.session_id, self.pid
        self.session_id = None
        self.pid = None
        if sub is not None:
            await sub.unsubscribe()
        if session_id and pid:
            await self.app.state.wsman.remove(session_id, pid, self.ws)

    async def _push(self, record: Dict[str, Any]) -> None:
        if record.get("id") != self.session_id:
            return

        session = SessionRecord.model_validate(record)
        if session.participant(self.pid) is None:
            reason = "ended" if session.status == "ENDED" else "kicked"
            logger.info("Connection for %s lost its seat in session %s (%s)", self.pid, session.id, reason)
            await self.ws.send_json(OutRemoved(session_id=session.id, reason=reason).model_dump())
            await self.unbind()
            return

        await self.ws.send_json(OutSessionSnapshot(session=build_view(session, self.pid)).model_dump())


@router.websocket("/ws")
async def ws_session(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    conn_id = uuid.uuid4().hex[:10]
    binding = SessionBinding(websocket.app, websocket)
    await websocket.send_json(OutHello(conn_id=conn_id).model_dump())

    try:
        while True:
            raw = await websocket.receive_json()

            session_id, pid = binding.session_id, binding.pid
            if isinstance(raw, dict) and raw.get("type") == "leave":
                # stop pushes first so our own removal is not reported as a kick
                await binding.unbind()

            to_sender = await dispatch_message(
                app=websocket.app,
                session_id=session_id,
                pid=pid,
                raw=raw,
            )

            for e in to_sender:
                await websocket.send_json(e)

                # create/join/reconnect bind this socket; leave releases it
                t = e.get("type")
                if t in ("session_created", "joined"):
                    await binding.bind(e["session_id"], e["participant_id"])
                elif t == "left":
                    await binding.unbind()

    except WebSocketDisconnect:
        await handle_disconnect(
            app=websocket.app,
            session_id=binding.session_id,
            pid=binding.pid,
        )

    finally:
        await binding.unbind()
