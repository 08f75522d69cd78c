# app/domain/common/validation.py
from __future__ import annotations

from typing import List, Optional

from app.store.models import Participant, SessionRecord, ROUND_FIELDS


def is_host(participant: Optional[Participant]) -> bool:
    """Check if participant holds the host seat."""
    return participant is not None and participant.is_host


def is_outlier(participant: Optional[Participant], session: SessionRecord) -> bool:
    """Check if participant is this round's outlier."""
    return (
        participant is not None
        and session.status == "PLAYING"
        and session.outlier_id == participant.id
    )


def check_invariants(session: SessionRecord) -> List[str]:
    """
    Return every violated session invariant (empty list = consistent).
    """
    problems: List[str] = []
    participants = session.participants

    ids = [p.id for p in participants]
    if len(ids) != len(set(ids)):
        problems.append("duplicate participant ids")

    hosts = [p for p in participants if p.is_host]
    if participants and len(hosts) != 1:
        problems.append(f"expected exactly one host, found {len(hosts)}")

    outliers = [p for p in participants if p.is_outlier]
    if session.status == "PLAYING":
        if len(outliers) != 1:
            problems.append(f"expected exactly one outlier while PLAYING, found {len(outliers)}")
        elif outliers[0].id != session.outlier_id:
            problems.append("outlier flag does not match outlier_id")
        if session.current_secret_word and session.category_word_bank is not None:
            if session.current_secret_word not in session.category_word_bank:
                problems.append("secret word is not in the word bank")
    else:
        if outliers:
            problems.append(f"outlier flagged while {session.status}")
        leftover = [f for f in ROUND_FIELDS if getattr(session, f) is not None]
        if leftover:
            problems.append(f"round fields present while {session.status}: {', '.join(leftover)}")

    if not participants and session.status != "ENDED":
        problems.append("empty session is not ENDED")

    return problems
