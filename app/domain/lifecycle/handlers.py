# app/domain/lifecycle/handlers.py
from __future__ import annotations

import logging
from typing import List, Optional

from app.domain.common.errors import DomainError
from app.domain.session.view import build_view
from app.transport.protocols import (
    OutgoingEvent,
    OutError,
    OutSessionCreated,
    OutJoined,
    OutLeft,
    OutSessionSnapshot,
    InCreateSession,
    InJoin,
    InLeave,
    InReconnect,
    InSnapshot,
)

logger = logging.getLogger(__name__)

# Returns events for the sender only; everyone else hears about the change
# through their own store subscription.
Result = List[OutgoingEvent]


def _error(e: DomainError) -> Result:
    return [OutError(code=e.code, message=e.message)]


async def handle_create_session(*, app, session_id: Optional[str], pid: Optional[str], msg: InCreateSession) -> Result:
    """
    A connection already bound to a session must leave it first.
    """
    if session_id and pid:
        return [OutError(code="ALREADY_IN_SESSION", message="Leave your current game first")]

    machine = app.state.machine
    try:
        session, participant_id = await machine.create(msg.name)
    except DomainError as e:
        return _error(e)

    return [OutSessionCreated(session_id=session.id, join_code=session.join_code, participant_id=participant_id)]


async def handle_join(*, app, session_id: Optional[str], pid: Optional[str], msg: InJoin) -> Result:
    if session_id and pid:
        return [OutError(code="ALREADY_IN_SESSION", message="Leave your current game first")]

    machine = app.state.machine
    try:
        session, participant_id = await machine.join(msg.join_code, msg.name)
    except DomainError as e:
        return _error(e)

    return [OutJoined(session_id=session.id, participant_id=participant_id)]


async def handle_reconnect(*, app, session_id: Optional[str], pid: Optional[str], msg: InReconnect) -> Result:
    """
    Reattach using the credentials a client kept from create/join.
    """
    machine = app.state.machine
    try:
        session = await machine.get(msg.session_id)
    except DomainError as e:
        return _error(e)

    if session.participant(msg.participant_id) is None:
        return [OutError(code="PARTICIPANT_NOT_FOUND", message="You are no longer in this game")]

    return [OutJoined(session_id=session.id, participant_id=msg.participant_id)]


async def handle_leave(*, app, session_id: Optional[str], pid: Optional[str], msg: InLeave) -> Result:
    if not session_id or not pid:
        return [OutError(code="NO_SESSION", message="Not in a game")]

    machine = app.state.machine
    try:
        await machine.leave(session_id, pid)
    except DomainError as e:
        return _error(e)

    return [OutLeft(session_id=session_id)]


async def handle_snapshot(*, app, session_id: Optional[str], pid: Optional[str], msg: InSnapshot) -> Result:
    if not session_id:
        return [OutError(code="NO_SESSION", message="Not in a game")]

    machine = app.state.machine
    try:
        session = await machine.get(session_id)
    except DomainError as e:
        return _error(e)

    return [OutSessionSnapshot(session=build_view(session, pid))]


async def handle_disconnect(*, app, session_id: Optional[str], pid: Optional[str]) -> Result:
    """
    Called by transport when the socket drops without a leave.
    Membership is kept (so the client can reconnect) unless the
    server is configured to treat a drop as a leave.
    """
    if not session_id or not pid:
        return []
    if not getattr(app.state, "leave_on_disconnect", False):
        return []

    machine = app.state.machine
    try:
        await machine.leave(session_id, pid)
    except DomainError as e:
        logger.warning("Leave-on-disconnect for %s in session %s failed: %s", pid, session_id, e.message)
    return []
