# app/domain/session/rules.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from app.domain.category.provider import CategoryChoice
from app.domain.common.types import MIN_PARTICIPANTS_TO_START
from app.store.models import Participant, SessionRecord, ROUND_FIELDS, UNSET

Fields = Dict[str, Any]

MAX_DISPLAY_NAME = 32


def clean_display_name(name: str) -> str:
    return " ".join((name or "").split())[:MAX_DISPLAY_NAME]


def new_participant(pid: str, display_name: str, *, is_host: bool = False, ts: int = 0) -> Participant:
    return Participant(
        id=pid,
        display_name=display_name,
        is_host=is_host,
        is_outlier=False,
        is_ready=True,
        joined_at=ts,
    )


def validate_start_conditions(session: SessionRecord, *, require_ready: bool = False) -> Tuple[bool, str, str]:
    """
    Check if a round can start.
    Returns (can_start, err_code, err_message)
    """
    if session.status != "WAITING":
        return False, "BAD_STATE", f"Cannot start a round while {session.status}"
    if len(session.participants) < MIN_PARTICIPANTS_TO_START:
        return False, "NOT_ENOUGH_PARTICIPANTS", f"At least {MIN_PARTICIPANTS_TO_START} players are needed to start"
    if require_ready:
        waiting_on = [p.display_name for p in session.participants if not p.is_ready]
        if waiting_on:
            return False, "NOT_READY", f"Waiting for: {', '.join(waiting_on)}"
    return True, "", ""


def unset_round_fields() -> Fields:
    return {f: UNSET for f in ROUND_FIELDS}


def round_reset_fields(participants: List[Participant]) -> Fields:
    """Back to the lobby: nobody is the outlier, round content removed."""
    fields: Fields = {
        "status": "WAITING",
        "participants": [p.model_copy(update={"is_outlier": False}) for p in participants],
    }
    fields.update(unset_round_fields())
    return fields


def round_start_fields(
    session: SessionRecord,
    *,
    choice: CategoryChoice,
    outlier_id: str,
    secret_word: str,
    reveal_word_bank: bool,
) -> Fields:
    return {
        "status": "PLAYING",
        "participants": [
            p.model_copy(update={"is_outlier": p.id == outlier_id, "is_ready": True})
            for p in session.participants
        ],
        "current_category_name": choice.category_name,
        "current_secret_word": secret_word,
        "category_word_bank": list(choice.words),
        "outlier_id": outlier_id,
        "reveal_word_bank": bool(reveal_word_bank),
    }


def join_fields(session: SessionRecord, participant: Participant) -> Optional[Fields]:
    """Append; None if the id is already present."""
    if session.participant(participant.id) is not None:
        return None
    return {"participants": list(session.participants) + [participant]}


def removal_fields(session: SessionRecord, pid: str) -> Optional[Fields]:
    """
    Remove a participant and repair the invariants:
      - host gone -> first remaining participant (list order) becomes host
      - outlier gone mid-round -> round resets to WAITING
      - nobody left -> ENDED
    Returns None when pid is not a member.
    """
    leaving = session.participant(pid)
    if leaving is None:
        return None

    remaining = [p for p in session.participants if p.id != pid]

    if not remaining:
        fields: Fields = {"status": "ENDED", "participants": []}
        fields.update(unset_round_fields())
        return fields

    if leaving.is_host:
        remaining[0] = remaining[0].model_copy(update={"is_host": True})

    if session.status == "PLAYING" and session.outlier_id == pid:
        return round_reset_fields(remaining)

    return {"participants": remaining}


def ready_fields(session: SessionRecord, pid: str, ready: bool) -> Optional[Fields]:
    p = session.participant(pid)
    if p is None or p.is_ready == ready:
        return None
    return {
        "participants": [
            x.model_copy(update={"is_ready": ready}) if x.id == pid else x
            for x in session.participants
        ]
    }


def end_fields(session: SessionRecord) -> Fields:
    fields: Fields = {
        "status": "ENDED",
        "participants": [p.model_copy(update={"is_outlier": False}) for p in session.participants],
    }
    fields.update(unset_round_fields())
    return fields
