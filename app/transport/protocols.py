# app/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    type: str


# ---- Lifecycle ----

class InCreateSession(InBase):
    type: Literal["create_session"] = "create_session"
    name: str = Field(min_length=1, max_length=32)


class InJoin(InBase):
    type: Literal["join"] = "join"
    join_code: str = Field(min_length=1, max_length=12)
    name: str = Field(min_length=1, max_length=32)


class InReconnect(InBase):
    type: Literal["reconnect"] = "reconnect"
    session_id: str
    participant_id: str


class InLeave(InBase):
    type: Literal["leave"] = "leave"


class InSnapshot(InBase):
    type: Literal["snapshot"] = "snapshot"


# ---- Lobby / rounds ----

class InCategory(BaseModel):
    category_name: str = Field(min_length=1, max_length=80)
    words: List[str]


class InStart(InBase):
    """
    Content source, in order of precedence:
      category (full custom list) > category_name (static table) > random static pick
    """
    type: Literal["start"] = "start"
    category: Optional[InCategory] = None
    category_name: Optional[str] = None
    reveal_word_bank: bool = False


class InRestart(InBase):
    type: Literal["restart"] = "restart"


class InSetReady(InBase):
    type: Literal["set_ready"] = "set_ready"
    ready: bool = True


class InGenerateCategory(InBase):
    type: Literal["generate_category"] = "generate_category"
    prompt: Optional[str] = Field(default=None, max_length=200)


class InListCategories(InBase):
    type: Literal["list_categories"] = "list_categories"


# ---- Moderation ----

class InKick(InBase):
    type: Literal["kick"] = "kick"
    target: str


# Union of all incoming messages you support right now
IncomingMessage = Union[
    InCreateSession,
    InJoin,
    InReconnect,
    InLeave,
    InSnapshot,
    InStart,
    InRestart,
    InSetReady,
    InGenerateCategory,
    InListCategories,
    InKick,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    conn_id: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutSessionCreated(OutBase):
    type: Literal["session_created"] = "session_created"
    session_id: str
    join_code: str
    participant_id: str


class OutJoined(OutBase):
    type: Literal["joined"] = "joined"
    session_id: str
    participant_id: str


class OutLeft(OutBase):
    type: Literal["left"] = "left"
    session_id: str


class OutSessionSnapshot(OutBase):
    type: Literal["session_snapshot"] = "session_snapshot"
    session: Dict[str, Any]


class OutRemoved(OutBase):
    """Pushed when the bound participant disappears from the record."""
    type: Literal["removed"] = "removed"
    session_id: str
    reason: Literal["kicked", "ended"] = "kicked"


class OutCategoryGenerated(OutBase):
    type: Literal["category_generated"] = "category_generated"
    category_name: str
    words: List[str]


class OutCategories(OutBase):
    type: Literal["categories"] = "categories"
    names: List[str]
    can_generate: bool = False


OutgoingEvent = Union[
    OutHello,
    OutError,
    OutSessionCreated,
    OutJoined,
    OutLeft,
    OutSessionSnapshot,
    OutRemoved,
    OutCategoryGenerated,
    OutCategories,
]


# =========================
# Parser helpers
# =========================

# A small map so we can parse by "type" quickly (simple & readable)
_INCOMING_BY_TYPE = {
    "create_session": InCreateSession,
    "join": InJoin,
    "reconnect": InReconnect,
    "leave": InLeave,
    "snapshot": InSnapshot,
    "start": InStart,
    "restart": InRestart,
    "set_ready": InSetReady,
    "generate_category": InGenerateCategory,
    "list_categories": InListCategories,
    "kick": InKick,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValueError for an unknown/missing type, ValidationError for a bad body.
    """
    t = payload.get("type") if isinstance(payload, dict) else None
    if not isinstance(t, str):
        raise ValueError("Missing/invalid type")

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
