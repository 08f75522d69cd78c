# app/domain/session/machine.py
from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from app.domain.category.provider import CategoryChoice, CategoryProvider, validate_generated
from app.domain.common.errors import Invalid, NotFound, TransientIO, Unauthorized
from app.domain.common.fsm import can_transition_to
from app.domain.common.validation import check_invariants, is_host
from app.domain.helpers import (
    gen_join_code,
    looks_like_join_code,
    normalize_join_code,
    pick_outlier,
    pick_secret_word,
)
from app.domain.session import rules
from app.store.errors import (
    JoinCodeTaken,
    SessionExists,
    SessionMissing,
    StoreUnavailable,
    VersionConflict,
)
from app.store.models import SessionRecord, apply_fields
from app.util.timeutil import now_ms

logger = logging.getLogger(__name__)

JOIN_CODE_ATTEMPTS = 5

Apply = Callable[[SessionRecord], Optional[Dict[str, Any]]]
CustomCategory = Union[CategoryChoice, Mapping[str, Any]]


def _new_id() -> str:
    return uuid.uuid4().hex


class SessionMachine:
    """
    All session mutations go through here.

    Each write is read -> rule -> update(expected_version=read.version).
    A concurrent writer makes the store raise VersionConflict; the rule is
    then re-applied to a fresh read, up to max_retries times.
    """

    def __init__(
        self,
        store,
        categories: CategoryProvider,
        *,
        rng: Optional[random.Random] = None,
        max_retries: int = 5,
        require_ready: bool = False,
        new_id: Callable[[], str] = _new_id,
    ) -> None:
        self.store = store
        self.categories = categories
        self.rng = rng or random.Random()
        self.max_retries = max(1, max_retries)
        self.require_ready = require_ready
        self.new_id = new_id

    # ----------------------------
    # Reads
    # ----------------------------
    async def get(self, session_id: str) -> SessionRecord:
        try:
            raw = await self.store.get(session_id)
        except StoreUnavailable as e:
            raise TransientIO(str(e), code="STORE_UNAVAILABLE") from e
        if raw is None:
            raise NotFound(f"Session {session_id} not found", code="SESSION_NOT_FOUND")
        return SessionRecord.model_validate(raw)

    async def find(self, join_code: str) -> SessionRecord:
        code = normalize_join_code(join_code)
        if not looks_like_join_code(code):
            raise NotFound(f"No game with code {code}", code="SESSION_NOT_FOUND")
        try:
            raw = await self.store.find_by_join_code(code)
        except StoreUnavailable as e:
            raise TransientIO(str(e), code="STORE_UNAVAILABLE") from e
        if raw is None:
            raise NotFound(f"No game with code {code}", code="SESSION_NOT_FOUND")
        return SessionRecord.model_validate(raw)

    # ----------------------------
    # Membership
    # ----------------------------
    async def create(self, creator_name: str) -> Tuple[SessionRecord, str]:
        name = self._require_name(creator_name)
        ts = now_ms()
        host = rules.new_participant(self.new_id(), name, is_host=True, ts=ts)

        id_collisions = 0
        for _ in range(JOIN_CODE_ATTEMPTS):
            session = SessionRecord(
                id=self.new_id(),
                join_code=gen_join_code(self.rng),
                status="WAITING",
                participants=[host],
                created_at=ts,
                updated_at=ts,
                version=1,
            )
            try:
                await self.store.create(session.id, session.to_store())
            except JoinCodeTaken:
                logger.info("Join code %s already in use, drawing another", session.join_code)
                continue
            except SessionExists as e:
                id_collisions += 1
                if id_collisions > 1:
                    raise TransientIO("Could not allocate a session id", code="SESSION_ID_COLLISION") from e
                logger.warning("Session id %s collided, retrying once", session.id)
                continue
            except StoreUnavailable as e:
                raise TransientIO(str(e), code="STORE_UNAVAILABLE") from e

            logger.info("Session %s created (code %s) by %s", session.id, session.join_code, host.id)
            return session, host.id

        raise TransientIO("Could not allocate a unique join code", code="JOIN_CODE_EXHAUSTED")

    async def join(self, join_code: str, display_name: str) -> Tuple[SessionRecord, str]:
        name = self._require_name(display_name)
        found = await self.find(join_code)
        if found.status == "ENDED":
            raise Invalid("This game has ended", code="SESSION_ENDED")

        participant = rules.new_participant(self.new_id(), name, ts=now_ms())

        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            if session.status == "ENDED":
                raise Invalid("This game has ended", code="SESSION_ENDED")
            return rules.join_fields(session, participant)

        session = await self._mutate(found.id, _apply, action="join")
        logger.info("Participant %s joined session %s (%d total)", participant.id, session.id, len(session.participants))
        return session, participant.id

    async def leave(self, session_id: str, participant_id: str) -> Optional[SessionRecord]:
        """
        Idempotent: an unknown session or participant is a no-op (returns None
        for a missing session, the unchanged record for a missing participant).
        """
        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            return rules.removal_fields(session, participant_id)

        try:
            session = await self._mutate(session_id, _apply, action="leave")
        except NotFound:
            logger.info("Leave for missing session %s ignored", session_id)
            return None

        if session.status == "ENDED":
            logger.info("Participant %s left session %s; session ended", participant_id, session_id)
        else:
            host = session.host()
            logger.info("Participant %s left session %s; host is %s", participant_id, session_id, host.id if host else None)
        return session

    async def kick(self, session_id: str, caller_id: str, target_id: str) -> SessionRecord:
        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            self._require_host(session, caller_id, "remove players")
            target = session.participant(target_id)
            if target is None:
                raise NotFound("Player not found", code="PARTICIPANT_NOT_FOUND")
            if target.is_host:
                raise Invalid("The host cannot be removed", code="CANNOT_KICK_HOST")
            return rules.removal_fields(session, target_id)

        session = await self._mutate(session_id, _apply, action="kick")
        logger.info("Participant %s removed from session %s by host %s", target_id, session_id, caller_id)
        return session

    async def set_ready(self, session_id: str, participant_id: str, ready: bool = True) -> SessionRecord:
        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            if session.participant(participant_id) is None:
                raise NotFound("Player not found", code="PARTICIPANT_NOT_FOUND")
            return rules.ready_fields(session, participant_id, ready)

        return await self._mutate(session_id, _apply, action="set_ready")

    # ----------------------------
    # Rounds
    # ----------------------------
    async def start(
        self,
        session_id: str,
        caller_id: str,
        custom_category: Optional[CustomCategory] = None,
        *,
        reveal_word_bank: bool = False,
    ) -> SessionRecord:
        if isinstance(custom_category, CategoryChoice):
            custom_category = custom_category.model_dump()

        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            self._require_host(session, caller_id, "start the game")
            if custom_category is not None:
                choice = validate_generated(custom_category)
            else:
                choice = self.categories.pick_random_default()

            ok, err_code, err_msg = rules.validate_start_conditions(session, require_ready=self.require_ready)
            if not ok:
                raise Invalid(err_msg, code=err_code)

            outlier = pick_outlier(session.participants, self.rng)
            word = pick_secret_word(choice.words, self.rng)
            return rules.round_start_fields(
                session,
                choice=choice,
                outlier_id=outlier.id,
                secret_word=word,
                reveal_word_bank=reveal_word_bank,
            )

        session = await self._mutate(session_id, _apply, action="start")
        logger.info(
            "Session %s round started: category %r, %d participants",
            session_id, session.current_category_name, len(session.participants),
        )
        return session

    async def restart(self, session_id: str, caller_id: str) -> SessionRecord:
        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            self._require_host(session, caller_id, "restart the game")
            if not can_transition_to(session.status, "WAITING"):
                raise Invalid(f"Cannot restart a game that is {session.status}", code="BAD_STATE")
            return rules.round_reset_fields(session.participants)

        session = await self._mutate(session_id, _apply, action="restart")
        logger.info("Session %s reset to lobby", session_id)
        return session

    async def end(self, session_id: str) -> SessionRecord:
        """Force a session into ENDED (admin)."""
        def _apply(session: SessionRecord) -> Optional[Dict[str, Any]]:
            if session.status == "ENDED":
                return None
            return rules.end_fields(session)

        session = await self._mutate(session_id, _apply, action="end")
        logger.info("Session %s ended", session_id)
        return session

    # ----------------------------
    # Internals
    # ----------------------------
    def _require_name(self, name: str) -> str:
        cleaned = rules.clean_display_name(name)
        if not cleaned:
            raise Invalid("A name is required", code="NAME_REQUIRED")
        return cleaned

    def _require_host(self, session: SessionRecord, caller_id: str, what: str) -> None:
        if session.status == "ENDED":
            raise Invalid("This game has ended", code="SESSION_ENDED")
        caller = session.participant(caller_id)
        if caller is None:
            raise NotFound("You are not in this game", code="PARTICIPANT_NOT_FOUND")
        if not is_host(caller):
            raise Unauthorized(f"Only the host can {what}", code="NOT_HOST")

    def _verify(self, session: SessionRecord, fields: Dict[str, Any]) -> None:
        preview = SessionRecord.model_validate(apply_fields(session.to_store(), fields))
        problems = check_invariants(preview)
        if problems:
            logger.error("Refusing write to session %s: %s", session.id, "; ".join(problems))
            raise Invalid("Update would break session invariants: " + "; ".join(problems), code="INVARIANT_VIOLATION")

    async def _mutate(self, session_id: str, apply: Apply, *, action: str) -> SessionRecord:
        for attempt in range(1, self.max_retries + 1):
            session = await self.get(session_id)
            fields = apply(session)
            if not fields:
                return session

            fields["updated_at"] = max(now_ms(), session.updated_at + 1)
            self._verify(session, fields)

            try:
                raw = await self.store.update(session_id, fields, expected_version=session.version)
            except VersionConflict:
                logger.info("Session %s changed during %s (attempt %d), retrying", session_id, action, attempt)
                continue
            except SessionMissing as e:
                raise NotFound(f"Session {session_id} not found", code="SESSION_NOT_FOUND") from e
            except StoreUnavailable as e:
                raise TransientIO(str(e), code="STORE_UNAVAILABLE") from e
            return SessionRecord.model_validate(raw)

        logger.warning("Giving up on %s for session %s after %d conflicts", action, session_id, self.max_retries)
        raise TransientIO(
            f"Could not {action}: the game kept changing, try again",
            code="CONTENTION",
        )
