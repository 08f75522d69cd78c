# app/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass

SESSION_PREFIX = "session:"


@dataclass(frozen=True)
class RK:
    """
    Redis Key builder for session-scoped keys.
    """
    session_id: str

    def session(self) -> str:
        return f"{SESSION_PREFIX}{self.session_id}"  # STRING (record JSON)

    def updates(self) -> str:
        return f"{SESSION_PREFIX}{self.session_id}:updates"  # PUBSUB channel

    @staticmethod
    def join_code(code: str) -> str:
        return f"joincode:{code.upper()}"  # STRING -> session id

    @staticmethod
    def session_pattern() -> str:
        return f"{SESSION_PREFIX}*"

    @staticmethod
    def session_id_from_key(key: str) -> str | None:
        """
        session:<id> -> <id>; channel keys and anything else -> None.
        """
        if not key.startswith(SESSION_PREFIX):
            return None
        rest = key[len(SESSION_PREFIX):]
        if not rest or ":" in rest:
            return None
        return rest
