# app/domain/common/fsm.py
from __future__ import annotations

from app.domain.common.types import SessionStatus


def can_transition_to(current: SessionStatus, target: SessionStatus) -> bool:
    """
    Validate status transitions. ENDED is terminal.
    """
    transitions: dict[SessionStatus, list[SessionStatus]] = {
        "WAITING": ["PLAYING", "WAITING", "ENDED"],
        "PLAYING": ["WAITING", "PLAYING", "ENDED"],
        "ENDED": [],
    }
    return target in transitions.get(current, [])
