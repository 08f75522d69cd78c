# app/store/models.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field


SessionStatus = Literal["WAITING", "PLAYING", "ENDED"]

# Cleared on restart and when the last participant leaves.
ROUND_FIELDS = (
    "current_category_name",
    "current_secret_word",
    "category_word_bank",
    "outlier_id",
    "reveal_word_bank",
)


class Participant(BaseModel):
    id: str
    display_name: str
    is_host: bool = False
    is_outlier: bool = False
    is_ready: bool = True
    joined_at: int = 0


class SessionRecord(BaseModel):
    id: str
    join_code: str
    status: SessionStatus = "WAITING"
    participants: List[Participant] = Field(default_factory=list)

    # round-scoped, present only while PLAYING
    current_category_name: Optional[str] = None
    current_secret_word: Optional[str] = None
    category_word_bank: Optional[List[str]] = None
    outlier_id: Optional[str] = None
    reveal_word_bank: Optional[bool] = None

    created_at: int
    updated_at: int
    version: int = 1

    def participant(self, pid: Optional[str]) -> Optional[Participant]:
        if not pid:
            return None
        for p in self.participants:
            if p.id == pid:
                return p
        return None

    def host(self) -> Optional[Participant]:
        for p in self.participants:
            if p.is_host:
                return p
        return None

    def to_store(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class _Unset:
    """Field marker: remove the key instead of writing a value."""

    _instance: Optional["_Unset"] = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def apply_fields(record: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge a partial update into a stored record (in place).
    UNSET removes the key; None is stored as an explicit null.
    """
    for k, v in fields.items():
        if v is UNSET:
            record.pop(k, None)
        elif isinstance(v, BaseModel):
            record[k] = v.model_dump(exclude_none=True)
        elif isinstance(v, list):
            record[k] = [x.model_dump(exclude_none=True) if isinstance(x, BaseModel) else x for x in v]
        else:
            record[k] = v
    return record
