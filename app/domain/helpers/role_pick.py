from __future__ import annotations

import random
from typing import Sequence

from app.store.models import Participant


def pick_outlier(participants: Sequence[Participant], rng: random.Random) -> Participant:
    """
    Uniform pick among the current participants.
    Caller guarantees the list is non-empty.
    """
    return rng.choice(list(participants))


def pick_secret_word(words: Sequence[str], rng: random.Random) -> str:
    return rng.choice(list(words))
