import random

import pytest

from app.domain.category.provider import CategoryProvider
from app.domain.lifecycle.handlers import handle_disconnect
from app.domain.session.machine import SessionMachine
from app.store.memory_repo import InMemorySessionRepo
from app.transport.dispatcher import dispatch_message
from app.transport.ws_manager import WSManager

WORDS = [f"word{i}" for i in range(10)]


class FakeState:
    def __init__(self, generator=None, leave_on_disconnect=False):
        self.store = InMemorySessionRepo()
        self.machine = SessionMachine(
            self.store,
            CategoryProvider(table={"Things": WORDS}, generator=generator, rng=random.Random(0)),
            rng=random.Random(0),
        )
        self.wsman = WSManager()
        self.leave_on_disconnect = leave_on_disconnect


class FakeApp:
    def __init__(self, **kw):
        self.state = FakeState(**kw)


async def _send(app, raw, session_id=None, pid=None):
    return await dispatch_message(app=app, session_id=session_id, pid=pid, raw=raw)


async def _lobby(app):
    [created] = await _send(app, {"type": "create_session", "name": "Host"})
    [joined] = await _send(app, {"type": "join", "join_code": created["join_code"], "name": "Guest"})
    return created["session_id"], created["participant_id"], joined["participant_id"], created["join_code"]


@pytest.mark.asyncio
async def test_bad_messages():
    app = FakeApp()
    [err] = await _send(app, {"type": "nope"})
    assert err == {"type": "error", "code": "BAD_MESSAGE", "message": "Unknown message type: nope"}

    [err] = await _send(app, {"type": "create_session", "name": ""})
    assert err["code"] == "BAD_MESSAGE"


@pytest.mark.asyncio
async def test_create_and_join():
    app = FakeApp()
    [created] = await _send(app, {"type": "create_session", "name": "Host"})
    assert created["type"] == "session_created"
    assert len(created["join_code"]) == 6

    [joined] = await _send(app, {"type": "join", "join_code": created["join_code"].lower(), "name": "Guest"})
    assert joined["type"] == "joined"
    assert joined["session_id"] == created["session_id"]


@pytest.mark.asyncio
async def test_bound_connection_cannot_create_or_join():
    app = FakeApp()
    sid, host, _, code = await _lobby(app)

    [err] = await _send(app, {"type": "create_session", "name": "Again"}, sid, host)
    assert err["code"] == "ALREADY_IN_SESSION"
    [err] = await _send(app, {"type": "join", "join_code": code, "name": "Again"}, sid, host)
    assert err["code"] == "ALREADY_IN_SESSION"


@pytest.mark.asyncio
async def test_join_unknown_code():
    [err] = await _send(FakeApp(), {"type": "join", "join_code": "ZZZZZZ", "name": "Guest"})
    assert err["type"] == "error"
    assert err["code"] == "SESSION_NOT_FOUND"


@pytest.mark.asyncio
async def test_reconnect():
    app = FakeApp()
    sid, host, _, _ = await _lobby(app)

    [ok] = await _send(app, {"type": "reconnect", "session_id": sid, "participant_id": host})
    assert ok == {"type": "joined", "session_id": sid, "participant_id": host}

    [err] = await _send(app, {"type": "reconnect", "session_id": sid, "participant_id": "ghost"})
    assert err["code"] == "PARTICIPANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_start_from_named_category_and_snapshots():
    app = FakeApp()
    sid, host, guest, _ = await _lobby(app)

    out = await _send(app, {"type": "start", "category_name": "Things"}, sid, host)
    assert out == []

    views = {}
    for pid in (host, guest):
        [snap] = await _send(app, {"type": "snapshot"}, sid, pid)
        views[pid] = snap["session"]

    assert all(v["status"] == "PLAYING" for v in views.values())
    assert all(v["current_category_name"] == "Things" for v in views.values())
    assert sorted(v["you_are_outlier"] for v in views.values()) == [False, True]
    insider = next(v for v in views.values() if not v["you_are_outlier"])
    assert insider["current_secret_word"] in WORDS


@pytest.mark.asyncio
async def test_start_errors_come_back_to_sender():
    app = FakeApp()
    sid, host, guest, _ = await _lobby(app)

    [err] = await _send(app, {"type": "start"}, sid, guest)
    assert err["code"] == "NOT_HOST"

    [err] = await _send(app, {"type": "start", "category_name": "Nope"}, sid, host)
    assert err["code"] == "CATEGORY_NOT_FOUND"

    [err] = await _send(
        app, {"type": "start", "category": {"category_name": "Tiny", "words": ["a", "b"]}}, sid, host
    )
    assert err["code"] == "CATEGORY_INVALID"

    [err] = await _send(app, {"type": "start"})
    assert err["code"] == "NO_SESSION"


@pytest.mark.asyncio
async def test_restart_and_ready():
    app = FakeApp()
    sid, host, guest, _ = await _lobby(app)

    assert await _send(app, {"type": "set_ready", "ready": False}, sid, guest) == []
    session = await app.state.machine.get(sid)
    assert session.participant(guest).is_ready is False

    await _send(app, {"type": "start"}, sid, host)
    assert await _send(app, {"type": "restart"}, sid, host) == []
    assert (await app.state.machine.get(sid)).status == "WAITING"


@pytest.mark.asyncio
async def test_kick_and_leave():
    app = FakeApp()
    sid, host, guest, _ = await _lobby(app)

    [err] = await _send(app, {"type": "kick", "target": host}, sid, guest)
    assert err["code"] == "NOT_HOST"

    assert await _send(app, {"type": "kick", "target": guest}, sid, host) == []
    session = await app.state.machine.get(sid)
    assert [p.id for p in session.participants] == [host]

    [left] = await _send(app, {"type": "leave"}, sid, host)
    assert left == {"type": "left", "session_id": sid}
    assert (await app.state.machine.get(sid)).status == "ENDED"


@pytest.mark.asyncio
async def test_list_categories():
    [out] = await _send(FakeApp(), {"type": "list_categories"})
    assert out == {"type": "categories", "names": ["Things"], "can_generate": False}


@pytest.mark.asyncio
async def test_generate_category():
    async def generator(prompt):
        return {"category": f"About {prompt}", "words": WORDS}

    app = FakeApp(generator=generator)
    sid, host, guest, _ = await _lobby(app)

    [out] = await _send(app, {"type": "generate_category", "prompt": "space"}, sid, host)
    assert out == {"type": "category_generated", "category_name": "About space", "words": WORDS}

    [err] = await _send(app, {"type": "generate_category"}, sid, guest)
    assert err["code"] == "NOT_HOST"


@pytest.mark.asyncio
async def test_generate_category_unconfigured():
    app = FakeApp()
    sid, host, _, _ = await _lobby(app)
    [err] = await _send(app, {"type": "generate_category"}, sid, host)
    assert err["code"] == "CATEGORY_UNAVAILABLE"


@pytest.mark.asyncio
async def test_disconnect_keeps_membership_by_default():
    app = FakeApp()
    sid, _, guest, _ = await _lobby(app)

    await handle_disconnect(app=app, session_id=sid, pid=guest)
    assert (await app.state.machine.get(sid)).participant(guest) is not None


@pytest.mark.asyncio
async def test_disconnect_can_count_as_leave():
    app = FakeApp(leave_on_disconnect=True)
    sid, _, guest, _ = await _lobby(app)

    await handle_disconnect(app=app, session_id=sid, pid=guest)
    assert (await app.state.machine.get(sid)).participant(guest) is None
