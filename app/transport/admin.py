from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from app.domain.common.errors import DomainError, NotFound

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/sessions")
async def list_sessions(request: Request):
    """
    List all live sessions (debug/admin).
    """
    store = request.app.state.store
    machine = request.app.state.machine
    wsman = request.app.state.wsman

    sessions = []
    for sid in await store.list_session_ids():
        try:
            s = await machine.get(sid)
        except NotFound:
            continue
        host = s.host()
        sessions.append(
            {
                "session_id": s.id,
                "join_code": s.join_code,
                "status": s.status,
                "participants": len(s.participants),
                "connected": await wsman.session_size(s.id),
                "host": host.display_name if host else None,
                "version": s.version,
                "created_at": s.created_at,
                "updated_at": s.updated_at,
            }
        )

    return {"sessions": sessions}


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    """
    Full, unredacted record (debug/admin).
    """
    try:
        s = await request.app.state.machine.get(session_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except DomainError as e:
        raise HTTPException(status_code=503, detail=e.message)
    return s.model_dump()


@router.post("/sessions/{session_id}/end")
async def end_session(session_id: str, request: Request):
    """
    Force a session to ENDED (debug/admin) and close its websockets.
    """
    try:
        s = await request.app.state.machine.end(session_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Session not found")
    except DomainError as e:
        raise HTTPException(status_code=503, detail=e.message)

    await request.app.state.wsman.close_session(session_id, code=4000, reason="admin_close")
    return {"ok": True, "session_id": session_id, "status": s.status}
