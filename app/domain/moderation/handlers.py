# app/domain/moderation/handlers.py
from __future__ import annotations

from typing import List, Optional

from app.domain.common.errors import DomainError
from app.transport.protocols import (
    InKick,
    OutError,
    OutgoingEvent,
)

Result = List[OutgoingEvent]


async def handle_kick(*, app, session_id: Optional[str], pid: Optional[str], msg: InKick) -> Result:
    if not session_id or not pid:
        return [OutError(code="NO_SESSION", message="Not in a game")]

    try:
        await app.state.machine.kick(session_id, pid, msg.target)
    except DomainError as e:
        return [OutError(code=e.code, message=e.message)]

    # Close target's websocket (if connected); its subscription already saw the removal
    wsman = getattr(app.state, "wsman", None)
    if wsman is not None:
        await wsman.close_pid(session_id, msg.target, code=4001, reason="kicked")

    return []
