from __future__ import annotations


class StoreError(Exception):
    """Base class for session store failures."""


class SessionExists(StoreError):
    pass


class JoinCodeTaken(StoreError):
    pass


class SessionMissing(StoreError):
    pass


class VersionConflict(StoreError):
    """The record changed between read and write."""

    def __init__(self, session_id: str, expected: int | None, actual: int | None):
        super().__init__(f"Session {session_id}: expected version {expected}, found {actual}")
        self.session_id = session_id
        self.expected = expected
        self.actual = actual


class StoreUnavailable(StoreError):
    pass
