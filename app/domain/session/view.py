# app/domain/session/view.py
from __future__ import annotations

from typing import Any, Dict, Optional

from app.domain.common.validation import is_outlier
from app.store.models import SessionRecord

_SECRET_FIELDS = {"participants", "outlier_id", "current_secret_word", "category_word_bank"}


def build_view(session: SessionRecord, viewer_id: Optional[str]) -> Dict[str, Any]:
    """
    What one participant is allowed to see.
    - membership, status and category name are public
    - only the viewer's own outlier flag is shown; outlier_id never is
    - the secret word goes to members who are not the outlier
    - the word bank goes to non-outliers, and to the outlier only if reveal_word_bank
    """
    viewer = session.participant(viewer_id)
    viewer_is_outlier = is_outlier(viewer, session)

    out = session.model_dump(exclude=_SECRET_FIELDS, exclude_none=True)
    out["participants"] = [
        {**p.model_dump(), "is_outlier": p.is_outlier if viewer is not None and p.id == viewer.id else False}
        for p in session.participants
    ]
    out["viewer_id"] = viewer.id if viewer is not None else None

    if session.status == "PLAYING":
        out["you_are_outlier"] = viewer_is_outlier
        if viewer is not None and not viewer_is_outlier:
            out["current_secret_word"] = session.current_secret_word
        if viewer is not None and (not viewer_is_outlier or session.reveal_word_bank):
            out["category_word_bank"] = list(session.category_word_bank or [])

    return out
