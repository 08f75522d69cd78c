# app/transport/dispatcher.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from app.transport.protocols import (
    parse_incoming,
    OutError,
    OutgoingEvent,
    InCreateSession,
    InJoin,
    InReconnect,
    InLeave,
    InSnapshot,
    InStart,
    InRestart,
    InSetReady,
    InGenerateCategory,
    InListCategories,
)
from app.domain.lifecycle.handlers import (
    handle_create_session,
    handle_join,
    handle_reconnect,
    handle_leave,
    handle_snapshot,
)
from app.domain.lobby.handlers import (
    handle_start,
    handle_restart,
    handle_set_ready,
    handle_generate_category,
    handle_list_categories,
)
from app.domain.moderation.handlers import handle_kick

DispatchResult = List[Dict[str, Any]]
# events for the sender, each a JSON dict


async def dispatch_message(
    *,
    app,
    session_id: Optional[str],
    pid: Optional[str],
    raw: Dict[str, Any],
) -> DispatchResult:
    """
    Transport layer calls this.
    - Parses + validates raw JSON
    - Routes to the correct domain handler
    - Returns the sender's events as JSON dicts

    NOTE: This file contains NO store access and NO game rules.
    """
    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        err = OutError(code="BAD_MESSAGE", message=str(e)).model_dump()
        return [err]

    # ---- Lifecycle ----
    if isinstance(msg, InCreateSession):
        return _dump(await handle_create_session(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InJoin):
        return _dump(await handle_join(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InReconnect):
        return _dump(await handle_reconnect(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InLeave):
        return _dump(await handle_leave(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InSnapshot):
        return _dump(await handle_snapshot(app=app, session_id=session_id, pid=pid, msg=msg))

    # ---- Lobby / rounds ----
    if isinstance(msg, InStart):
        return _dump(await handle_start(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InRestart):
        return _dump(await handle_restart(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InSetReady):
        return _dump(await handle_set_ready(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InGenerateCategory):
        return _dump(await handle_generate_category(app=app, session_id=session_id, pid=pid, msg=msg))

    if isinstance(msg, InListCategories):
        return _dump(await handle_list_categories(app=app, session_id=session_id, pid=pid, msg=msg))

    # ---- Moderation ----
    # InKick is the last IncomingMessage type
    return _dump(await handle_kick(app=app, session_id=session_id, pid=pid, msg=msg))


def _dump(events: List[OutgoingEvent]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts.
    """
    return [e.model_dump() for e in events]
