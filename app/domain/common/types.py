# app/domain/common/types.py
from __future__ import annotations

from typing import Literal

SessionStatus = Literal["WAITING", "PLAYING", "ENDED"]

MIN_PARTICIPANTS_TO_START = 2
JOIN_CODE_LENGTH = 6
