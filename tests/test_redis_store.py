import asyncio
import json

import pytest
from fakeredis import FakeServer
from fakeredis.aioredis import FakeRedis

from app.store.errors import JoinCodeTaken, SessionExists, SessionMissing, StoreUnavailable, VersionConflict
from app.store.models import UNSET
from app.store.redis_keys import RK
from app.store.redis_repo import RedisSessionRepo


def _record(sid="s1", code="ABC123"):
    return {
        "id": sid,
        "join_code": code,
        "status": "WAITING",
        "participants": [{"id": "p1", "display_name": "Ana", "is_host": True}],
        "current_category_name": "Animals",
        "created_at": 1,
        "updated_at": 1,
    }


def _repo():
    r = FakeRedis(decode_responses=False)
    return r, RedisSessionRepo(r, session_ttl_sec=600)


@pytest.mark.asyncio
async def test_create_get_and_find():
    r, repo = _repo()
    await repo.create("s1", _record())

    got = await repo.get("s1")
    assert got["version"] == 1
    assert (await repo.find_by_join_code(" abc123 "))["id"] == "s1"
    assert await repo.find_by_join_code("ZZZZZZ") is None
    assert await repo.get("missing") is None

    assert 0 < await r.ttl(RK("s1").session()) <= 600
    assert 0 < await r.ttl(RK.join_code("ABC123")) <= 600
    await r.aclose()


@pytest.mark.asyncio
async def test_create_releases_code_when_id_exists():
    r, repo = _repo()
    await r.set(RK("s1").session(), b"{}")

    with pytest.raises(SessionExists):
        await repo.create("s1", _record(code="QQQ111"))
    assert await r.get(RK.join_code("QQQ111")) is None
    await r.aclose()


@pytest.mark.asyncio
async def test_create_rejects_taken_code():
    r, repo = _repo()
    await repo.create("s1", _record())

    with pytest.raises(JoinCodeTaken):
        await repo.create("s2", _record(sid="s2"))
    assert await repo.get("s2") is None
    # the original claim is untouched
    assert await r.get(RK.join_code("ABC123")) == b"s1"
    await r.aclose()


@pytest.mark.asyncio
async def test_update_merges_and_bumps_version():
    r, repo = _repo()
    await repo.create("s1", _record())

    updated = await repo.update("s1", {"status": "PLAYING", "current_category_name": UNSET}, expected_version=1)
    assert updated["version"] == 2
    assert updated["status"] == "PLAYING"
    assert "current_category_name" not in updated
    assert await repo.get("s1") == updated
    await r.aclose()


@pytest.mark.asyncio
async def test_update_with_stale_version_is_a_conflict():
    r, repo = _repo()
    await repo.create("s1", _record())
    await repo.update("s1", {"status": "PLAYING"})

    with pytest.raises(VersionConflict):
        await repo.update("s1", {"status": "ENDED"}, expected_version=1)
    assert (await repo.get("s1"))["status"] == "PLAYING"

    with pytest.raises(SessionMissing):
        await repo.update("nope", {"status": "ENDED"})
    await r.aclose()


@pytest.mark.asyncio
async def test_write_between_watch_and_exec_is_a_conflict(monkeypatch):
    r, repo = _repo()
    await repo.create("s1", _record())
    real_pipeline = r.pipeline

    def racing_pipeline(*args, **kwargs):
        pipe = real_pipeline(*args, **kwargs)
        real_get = pipe.get

        async def get(name):
            raw = await real_get(name)
            # a rival writer commits right after our read
            rival = json.loads(raw)
            rival["version"] += 1
            rival["status"] = "ENDED"
            await r.set(name, json.dumps(rival))
            return raw

        pipe.get = get
        return pipe

    monkeypatch.setattr(r, "pipeline", racing_pipeline)
    with pytest.raises(VersionConflict):
        await repo.update("s1", {"status": "PLAYING"}, expected_version=1)
    monkeypatch.undo()

    stored = await repo.get("s1")
    assert stored["status"] == "ENDED"
    assert stored["version"] == 2
    await r.aclose()


@pytest.mark.asyncio
async def test_subscriber_gets_own_update_and_stops_after_unsubscribe():
    r, repo = _repo()
    await repo.create("s1", _record())

    seen = []
    second = asyncio.Event()

    async def observer(rec):
        seen.append(rec["version"])
        if rec["version"] == 2:
            second.set()

    sub = await repo.subscribe("s1", observer)
    assert seen == [1]

    await repo.update("s1", {"status": "PLAYING"})
    await asyncio.wait_for(second.wait(), timeout=2)
    assert seen == [1, 2]

    await sub.unsubscribe()
    await sub.unsubscribe()
    await repo.update("s1", {"status": "WAITING"})
    await asyncio.sleep(0.05)

    assert seen == [1, 2]
    assert sub.closed
    await r.aclose()


@pytest.mark.asyncio
async def test_list_session_ids_skips_other_keys():
    r, repo = _repo()
    await repo.create("b", _record(sid="b", code="BBBBBB"))
    await repo.create("a", _record(sid="a", code="AAAAAA"))
    await r.set("unrelated", b"x")

    assert await repo.list_session_ids() == ["a", "b"]
    await r.aclose()


@pytest.mark.asyncio
async def test_redis_outage_is_store_unavailable():
    server = FakeServer()
    server.connected = False
    repo = RedisSessionRepo(FakeRedis(server=server))

    with pytest.raises(StoreUnavailable):
        await repo.get("s1")
    with pytest.raises(StoreUnavailable):
        await repo.create("s1", _record())
