from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError, WatchError

from app.store.errors import (
    JoinCodeTaken,
    SessionExists,
    SessionMissing,
    StoreUnavailable,
    VersionConflict,
)
from app.store.models import apply_fields
from app.store.redis_keys import RK
from app.store.subscription import Observer, Subscription

logger = logging.getLogger(__name__)


class RedisSessionRepo:
    """
    Session records as JSON strings, one key per session.
    - updates are WATCH/MULTI transactions (optimistic concurrency on `version`)
    - every committed update is PUBLISHed with the full record
    - join codes live in their own key, claimed with SET NX
    """

    def __init__(self, r: Redis, session_ttl_sec: int = 6 * 3600):
        self.r = r
        self.session_ttl_sec = session_ttl_sec

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    @contextmanager
    def _io(self, op: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            raise StoreUnavailable(f"redis {op} failed: {e}") from e

    # ----------------------------
    # Create / read
    # ----------------------------
    async def create(self, session_id: str, record: Dict[str, Any]) -> None:
        rk = RK(session_id)
        code = str(record.get("join_code", "")).upper()
        stored = dict(record)
        stored.setdefault("version", 1)
        payload = json.dumps(stored)

        with self._io("create"):
            claimed = await self.r.set(RK.join_code(code), session_id, nx=True, ex=self.session_ttl_sec)
            if not claimed:
                raise JoinCodeTaken(code)

            created = await self.r.set(rk.session(), payload, nx=True, ex=self.session_ttl_sec)
            if not created:
                # release the code we just claimed
                await self.r.delete(RK.join_code(code))
                raise SessionExists(session_id)

            await self.r.publish(rk.updates(), payload)

    async def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._io("get"):
            raw = await self.r.get(RK(session_id).session())
        if raw is None:
            return None
        return json.loads(self._dec(raw))

    async def find_by_join_code(self, code: str) -> Optional[Dict[str, Any]]:
        with self._io("find_by_join_code"):
            sid = await self.r.get(RK.join_code((code or "").strip()))
        if sid is None:
            return None
        return await self.get(self._dec(sid))

    # ----------------------------
    # Update (optimistic)
    # ----------------------------
    async def update(
        self,
        session_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        rk = RK(session_id)
        key = rk.session()

        with self._io("update"):
            async with self.r.pipeline(transaction=True) as pipe:
                try:
                    await pipe.watch(key)
                    raw = await pipe.get(key)
                    if raw is None:
                        raise SessionMissing(session_id)

                    record = json.loads(self._dec(raw))
                    current = int(record.get("version", 1))
                    if expected_version is not None and current != expected_version:
                        raise VersionConflict(session_id, expected_version, current)

                    apply_fields(record, fields)
                    record["version"] = current + 1
                    payload = json.dumps(record)

                    pipe.multi()
                    pipe.set(key, payload, ex=self.session_ttl_sec)
                    pipe.expire(RK.join_code(record.get("join_code", "")), self.session_ttl_sec)
                    pipe.publish(rk.updates(), payload)
                    await pipe.execute()
                except WatchError as e:
                    # another writer committed between WATCH and EXEC
                    raise VersionConflict(session_id, expected_version, None) from e

        return record

    # ----------------------------
    # Subscriptions
    # ----------------------------
    async def subscribe(self, session_id: str, observer: Observer) -> Subscription:
        channel = RK(session_id).updates()
        pubsub = self.r.pubsub()
        with self._io("subscribe"):
            await pubsub.subscribe(channel)

        task: Optional[asyncio.Task] = None

        async def _close() -> None:
            # from inside an observer the listener stops itself after deliver()
            if task is not None and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        sub = Subscription(session_id, observer, on_close=_close)
        task = asyncio.create_task(self._listen(pubsub, sub, channel))

        try:
            current = await self.get(session_id)
        except StoreUnavailable:
            await sub.unsubscribe()
            raise
        if current is not None:
            await sub.deliver(current)
        return sub

    async def _listen(self, pubsub: PubSub, sub: Subscription, channel: str) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    record = json.loads(self._dec(message.get("data")))
                except (TypeError, ValueError):
                    logger.warning("Dropping malformed update on session %s", sub.session_id)
                    continue
                await sub.deliver(record)
                if sub.closed:
                    break
        except RedisError:
            logger.warning("Update stream for session %s dropped", sub.session_id, exc_info=True)
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except RedisError:
                logger.warning("Failed to close pubsub for session %s", sub.session_id, exc_info=True)

    # ----------------------------
    # Admin
    # ----------------------------
    async def list_session_ids(self) -> List[str]:
        ids: List[str] = []
        with self._io("scan"):
            async for k in self.r.scan_iter(match=RK.session_pattern(), count=200):
                sid = RK.session_id_from_key(self._dec(k))
                if sid:
                    ids.append(sid)
        return sorted(set(ids))
