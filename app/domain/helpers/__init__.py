from __future__ import annotations

from .join_code import gen_join_code, looks_like_join_code, normalize_join_code
from .role_pick import pick_outlier, pick_secret_word

__all__ = [
    "gen_join_code",
    "looks_like_join_code",
    "normalize_join_code",
    "pick_outlier",
    "pick_secret_word",
]
