# app/store/subscription.py
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

Observer = Callable[[Dict[str, Any]], Awaitable[None]]
Closer = Callable[[], Awaitable[None]]


class Subscription:
    """
    One observer bound to one session record.
    Holds the last delivered snapshot and drops records older than it,
    so out-of-order notifications never roll a subscriber back.
    """

    def __init__(self, session_id: str, observer: Observer, on_close: Optional[Closer] = None) -> None:
        self.session_id = session_id
        self._observer = observer
        self._on_close = on_close
        self._closed = False
        self.last_version = 0
        self.snapshot: Optional[Dict[str, Any]] = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def deliver(self, record: Dict[str, Any]) -> None:
        if self._closed:
            return
        version = int(record.get("version", 0) or 0)
        if version <= self.last_version:
            return
        self.last_version = version
        self.snapshot = record
        try:
            await self._observer(record)
        except Exception:
            # one broken observer must not break the writer or other subscribers
            logger.exception("Observer for session %s failed on version %s", self.session_id, version)

    async def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            await self._on_close()
