from __future__ import annotations

from typing import List, Optional

from app.domain.common.errors import DomainError
from app.transport.protocols import (
    OutgoingEvent,
    OutError,
    OutCategories,
    OutCategoryGenerated,
    InGenerateCategory,
    InListCategories,
    InRestart,
    InSetReady,
    InStart,
)

Result = List[OutgoingEvent]


def _no_session() -> Result:
    return [OutError(code="NO_SESSION", message="Not in a game")]


async def handle_start(*, app, session_id: Optional[str], pid: Optional[str], msg: InStart) -> Result:
    if not session_id or not pid:
        return _no_session()

    machine = app.state.machine
    try:
        custom = None
        if msg.category is not None:
            custom = msg.category.model_dump()
        elif msg.category_name:
            custom = machine.categories.get_default(msg.category_name)

        await machine.start(session_id, pid, custom, reveal_word_bank=msg.reveal_word_bank)
    except DomainError as e:
        return [OutError(code=e.code, message=e.message)]

    # every member, the host included, gets the new round through its subscription
    return []


async def handle_restart(*, app, session_id: Optional[str], pid: Optional[str], msg: InRestart) -> Result:
    if not session_id or not pid:
        return _no_session()

    try:
        await app.state.machine.restart(session_id, pid)
    except DomainError as e:
        return [OutError(code=e.code, message=e.message)]

    return []


async def handle_set_ready(*, app, session_id: Optional[str], pid: Optional[str], msg: InSetReady) -> Result:
    if not session_id or not pid:
        return _no_session()

    try:
        await app.state.machine.set_ready(session_id, pid, msg.ready)
    except DomainError as e:
        return [OutError(code=e.code, message=e.message)]

    return []


async def handle_generate_category(*, app, session_id: Optional[str], pid: Optional[str], msg: InGenerateCategory) -> Result:
    """
    Host-side helper: generate a list to preview before `start`.
    On failure the client should offer the static categories instead.
    """
    if not session_id or not pid:
        return _no_session()

    machine = app.state.machine
    try:
        session = await machine.get(session_id)
        me = session.participant(pid)
        if me is None or not me.is_host:
            return [OutError(code="NOT_HOST", message="Only the host can pick the category")]
        choice = await machine.categories.pick_category(msg.prompt)
    except DomainError as e:
        return [OutError(code=e.code, message=e.message)]

    return [OutCategoryGenerated(category_name=choice.category_name, words=choice.words)]


async def handle_list_categories(*, app, session_id: Optional[str], pid: Optional[str], msg: InListCategories) -> Result:
    categories = app.state.machine.categories
    return [OutCategories(names=categories.list_defaults(), can_generate=categories.can_generate)]
