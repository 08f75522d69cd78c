# app/store/memory_repo.py
from __future__ import annotations

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional

from app.store.errors import JoinCodeTaken, SessionExists, SessionMissing, VersionConflict
from app.store.models import apply_fields
from app.store.subscription import Observer, Subscription

logger = logging.getLogger(__name__)


class InMemorySessionRepo:
    """
    Process-local session store (dev server, tests).
    Same contract as RedisSessionRepo: versioned updates + push subscriptions.
    """

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._codes: Dict[str, str] = {}
        self._subs: Dict[str, List[Subscription]] = {}
        self._lock = asyncio.Lock()

    async def create(self, session_id: str, record: Dict[str, Any]) -> None:
        code = str(record.get("join_code", "")).upper()
        async with self._lock:
            if session_id in self._records:
                raise SessionExists(session_id)
            if code in self._codes:
                raise JoinCodeTaken(code)
            stored = copy.deepcopy(record)
            stored.setdefault("version", 1)
            self._records[session_id] = stored
            self._codes[code] = session_id
            snapshot = copy.deepcopy(stored)
        await self._publish(session_id, snapshot)

    async def get(self, session_id: str) -> Optional[Dict[str, Any]]:
        rec = self._records.get(session_id)
        return copy.deepcopy(rec) if rec is not None else None

    async def find_by_join_code(self, code: str) -> Optional[Dict[str, Any]]:
        sid = self._codes.get((code or "").strip().upper())
        if sid is None:
            return None
        return await self.get(sid)

    async def update(
        self,
        session_id: str,
        fields: Dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        async with self._lock:
            current = self._records.get(session_id)
            if current is None:
                raise SessionMissing(session_id)
            version = int(current.get("version", 1))
            if expected_version is not None and version != expected_version:
                raise VersionConflict(session_id, expected_version, version)
            updated = apply_fields(copy.deepcopy(current), fields)
            updated["version"] = version + 1
            self._records[session_id] = updated
            snapshot = copy.deepcopy(updated)
        await self._publish(session_id, snapshot)
        return copy.deepcopy(snapshot)

    async def subscribe(self, session_id: str, observer: Observer) -> Subscription:
        sub: Subscription

        async def _close() -> None:
            subs = self._subs.get(session_id, [])
            if sub in subs:
                subs.remove(sub)
            if not subs:
                self._subs.pop(session_id, None)

        sub = Subscription(session_id, observer, on_close=_close)
        self._subs.setdefault(session_id, []).append(sub)

        current = await self.get(session_id)
        if current is not None:
            await sub.deliver(current)
        return sub

    async def list_session_ids(self) -> List[str]:
        return sorted(self._records.keys())

    async def _publish(self, session_id: str, record: Dict[str, Any]) -> None:
        subs = list(self._subs.get(session_id, []))
        logger.debug("Publishing session %s v%s to %d subscriber(s)", session_id, record.get("version"), len(subs))
        for s in subs:
            await s.deliver(copy.deepcopy(record))
