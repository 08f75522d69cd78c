# app/client/local_state.py
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class PendingLeave(BaseModel):
    session_id: str
    participant_id: str
    ts: int  # epoch seconds when the marker was written


class LocalState(BaseModel):
    session_id: Optional[str] = None
    participant_id: Optional[str] = None
    pending_leave: Optional[PendingLeave] = None

    def credentials(self) -> Optional[tuple[str, str]]:
        if self.session_id and self.participant_id:
            return self.session_id, self.participant_id
        return None


class LocalStateFile:
    """
    Client-side durable state: rejoin credentials + at most one pending-leave marker.
    Saved as JSON, replaced atomically so a crash never leaves half a file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> LocalState:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LocalState()
        try:
            return LocalState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Ignoring unreadable client state at %s", self.path)
            return LocalState()

    def save(self, state: LocalState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".state-", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(state.model_dump_json())
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    # ---- convenience ----
    def set_credentials(self, session_id: str, participant_id: str) -> None:
        state = self.load()
        state.session_id = session_id
        state.participant_id = participant_id
        self.save(state)

    def clear_credentials(self) -> None:
        state = self.load()
        state.session_id = None
        state.participant_id = None
        self.save(state)

    def set_pending_leave(self, marker: PendingLeave) -> None:
        state = self.load()
        state.pending_leave = marker
        self.save(state)

    def clear_pending_leave(self) -> None:
        state = self.load()
        if state.pending_leave is None:
            return
        state.pending_leave = None
        self.save(state)
