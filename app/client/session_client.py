# app/client/session_client.py
from __future__ import annotations

import atexit
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from app.client.local_state import LocalStateFile, PendingLeave
from app.domain.category.provider import CategoryChoice
from app.domain.common.errors import DomainError, NotFound
from app.domain.session.machine import CustomCategory, SessionMachine
from app.settings import Settings, get_settings
from app.store.models import Participant, SessionRecord
from app.store.subscription import Subscription
from app.util.timeutil import now_ts

logger = logging.getLogger(__name__)

OnChange = Callable[[Optional[SessionRecord], Optional[Participant]], Awaitable[None]]


class LocalSessionClient:
    """
    One participant's view of one session.
    - holds at most one store subscription
    - keeps (session_id, participant_id) on disk so a restart can rejoin
    - writes a pending-leave marker before leaving; replays it on startup
    Local state is only ever refreshed from store notifications.
    """

    def __init__(
        self,
        machine: SessionMachine,
        state_file: LocalStateFile,
        *,
        pending_leave_max_age_sec: int = 3600,
        on_change: Optional[OnChange] = None,
        clock: Callable[[], int] = now_ts,
    ) -> None:
        self.machine = machine
        self.store = machine.store
        self.state_file = state_file
        self.pending_leave_max_age_sec = pending_leave_max_age_sec
        self.on_change = on_change
        self._clock = clock

        self.session: Optional[SessionRecord] = None
        self.participant: Optional[Participant] = None
        self._session_id: Optional[str] = None
        self._participant_id: Optional[str] = None
        self._sub: Optional[Subscription] = None

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def participant_id(self) -> Optional[str]:
        return self._participant_id

    @property
    def subscribed(self) -> bool:
        return self._sub is not None and not self._sub.closed

    # ----------------------------
    # Startup / recovery
    # ----------------------------
    async def startup(self) -> Optional[SessionRecord]:
        await self.replay_pending_leave()

        creds = self.state_file.load().credentials()
        if creds is None:
            return None
        session_id, participant_id = creds

        try:
            session = await self.machine.get(session_id)
        except NotFound:
            logger.info("Stored session %s is gone, forgetting it", session_id)
            self.state_file.clear_credentials()
            return None

        if session.participant(participant_id) is None:
            logger.info("Participant %s is no longer in session %s, forgetting it", participant_id, session_id)
            self.state_file.clear_credentials()
            return None

        await self._bind(session_id, participant_id)
        return self.session

    async def replay_pending_leave(self) -> bool:
        """
        Best effort: replay a fresh marker as leave(), then drop it whatever happens.
        Returns True if a leave was sent successfully.
        """
        marker = self.state_file.load().pending_leave
        if marker is None:
            return False
        try:
            age = self._clock() - marker.ts
            if age >= self.pending_leave_max_age_sec:
                logger.info("Dropping stale pending leave for session %s (%ss old)", marker.session_id, age)
                return False
            try:
                await self.machine.leave(marker.session_id, marker.participant_id)
            except DomainError as e:
                logger.warning("Pending leave for session %s failed: %s", marker.session_id, e.message)
                return False
            logger.info("Replayed pending leave for session %s", marker.session_id)
            return True
        finally:
            self.state_file.clear_pending_leave()

    def record_pending_leave(self) -> None:
        """
        Exit hook: no network, just remember that we meant to leave.
        """
        if not self._session_id or not self._participant_id:
            return
        self.state_file.set_pending_leave(
            PendingLeave(session_id=self._session_id, participant_id=self._participant_id, ts=self._clock())
        )
        self.state_file.clear_credentials()

    # ----------------------------
    # Actions
    # ----------------------------
    async def create(self, name: str) -> SessionRecord:
        session, pid = await self.machine.create(name)
        self.state_file.set_credentials(session.id, pid)
        await self._bind(session.id, pid)
        return self.session or session

    async def join(self, join_code: str, name: str) -> SessionRecord:
        session, pid = await self.machine.join(join_code, name)
        self.state_file.set_credentials(session.id, pid)
        await self._bind(session.id, pid)
        return self.session or session

    async def start(
        self,
        custom_category: Optional[CustomCategory] = None,
        *,
        reveal_word_bank: bool = False,
    ) -> SessionRecord:
        sid, pid = self._identity()
        return await self.machine.start(sid, pid, custom_category, reveal_word_bank=reveal_word_bank)

    async def generate_category(self, prompt: Optional[str] = None) -> CategoryChoice:
        return await self.machine.categories.pick_category(prompt)

    async def restart(self) -> SessionRecord:
        sid, pid = self._identity()
        return await self.machine.restart(sid, pid)

    async def kick(self, target_id: str) -> SessionRecord:
        sid, pid = self._identity()
        return await self.machine.kick(sid, pid, target_id)

    async def set_ready(self, ready: bool = True) -> SessionRecord:
        sid, pid = self._identity()
        return await self.machine.set_ready(sid, pid, ready)

    async def leave(self) -> Optional[SessionRecord]:
        if not self._session_id or not self._participant_id:
            return None
        sid, pid = self._session_id, self._participant_id

        # marker first: if we die mid-leave, the next startup finishes the job
        self.state_file.set_pending_leave(PendingLeave(session_id=sid, participant_id=pid, ts=self._clock()))
        self.state_file.clear_credentials()
        await self._unbind()
        await self._set_local(None, None)

        result = await self.machine.leave(sid, pid)
        self.state_file.clear_pending_leave()
        return result

    async def close(self) -> None:
        await self._unbind()

    # ----------------------------
    # Subscription plumbing
    # ----------------------------
    def _identity(self) -> tuple[str, str]:
        if not self._session_id or not self._participant_id:
            raise NotFound("You are not in a game", code="NO_SESSION")
        return self._session_id, self._participant_id

    async def _bind(self, session_id: str, participant_id: str) -> None:
        await self._unbind()
        self._session_id = session_id
        self._participant_id = participant_id
        sub = await self.store.subscribe(session_id, self._on_record)
        if self._session_id != session_id:
            # the initial snapshot already showed we are not a member
            await sub.unsubscribe()
            return
        self._sub = sub

    async def _unbind(self) -> None:
        sub, self._sub = self._sub, None
        self._session_id = None
        self._participant_id = None
        if sub is not None:
            await sub.unsubscribe()

    async def _on_record(self, record: Dict[str, Any]) -> None:
        if record.get("id") != self._session_id:
            # late callback from a session we already left
            return

        session = SessionRecord.model_validate(record)
        me = session.participant(self._participant_id)
        if me is None:
            logger.info("Participant %s no longer in session %s (kicked or ended)", self._participant_id, session.id)
            self.state_file.clear_credentials()
            await self._unbind()
            await self._set_local(session, None)
            return

        await self._set_local(session, me)

    async def _set_local(self, session: Optional[SessionRecord], me: Optional[Participant]) -> None:
        self.session = session
        self.participant = me
        if self.on_change is not None:
            await self.on_change(session, me)


def open_local_client(
    machine: SessionMachine,
    settings: Optional[Settings] = None,
    *,
    on_change: Optional[OnChange] = None,
    install_exit_hook: bool = True,
) -> LocalSessionClient:
    """
    Build a client from settings (state file path, pending-leave window).
    The exit hook only writes the pending-leave marker; startup() replays it.
    """
    settings = settings or get_settings()
    client = LocalSessionClient(
        machine,
        LocalStateFile(settings.CLIENT_STATE_PATH),
        pending_leave_max_age_sec=settings.PENDING_LEAVE_MAX_AGE_SEC,
        on_change=on_change,
    )
    if install_exit_hook:
        atexit.register(client.record_pending_leave)
    return client
