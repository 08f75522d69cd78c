from __future__ import annotations

import random
import string

from app.domain.common.types import JOIN_CODE_LENGTH

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits


def gen_join_code(rng: random.Random, n: int = JOIN_CODE_LENGTH) -> str:
    return "".join(rng.choice(JOIN_CODE_ALPHABET) for _ in range(n))


def normalize_join_code(code: str) -> str:
    """Players type codes by hand: trim and upper-case."""
    return (code or "").strip().upper()


def looks_like_join_code(code: str) -> bool:
    code = normalize_join_code(code)
    return len(code) == JOIN_CODE_LENGTH and all(c in JOIN_CODE_ALPHABET for c in code)
