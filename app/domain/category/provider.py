# app/domain/category/provider.py
from __future__ import annotations

import logging
import random
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from app.domain.category.defaults import DEFAULT_CATEGORIES
from app.domain.common.errors import Invalid, NotFound, TransientIO

logger = logging.getLogger(__name__)

MIN_WORDS = 8
MAX_WORDS = 30

# prompt -> raw payload ({"category": str, "words": [str]})
Generator = Callable[[Optional[str]], Awaitable[Dict[str, Any]]]


class CategoryChoice(BaseModel):
    category_name: str
    words: List[str] = Field(default_factory=list)


def validate_generated(payload: Any) -> CategoryChoice:
    """
    Accept a generated (or client-supplied) category.
    - category name must be a non-empty string
    - words must be a list with at least MIN_WORDS non-empty strings
    - longer lists are cut to MAX_WORDS
    Short lists are rejected, never padded.
    """
    if not isinstance(payload, Mapping):
        raise Invalid("Category response must be an object", code="CATEGORY_INVALID")

    name = payload.get("category_name", payload.get("category"))
    if not isinstance(name, str) or not name.strip():
        raise Invalid("Category response has no category name", code="CATEGORY_INVALID")

    raw_words = payload.get("words")
    if not isinstance(raw_words, list):
        raise Invalid("Category response has no word list", code="CATEGORY_INVALID")

    words = [w.strip() for w in raw_words if isinstance(w, str) and w.strip()]
    if len(words) < MIN_WORDS:
        raise Invalid(
            f"Category needs at least {MIN_WORDS} words, got {len(words)}",
            code="CATEGORY_INVALID",
        )

    return CategoryChoice(category_name=name.strip(), words=words[:MAX_WORDS])


class CategoryProvider:
    def __init__(
        self,
        *,
        table: Optional[Mapping[str, List[str]]] = None,
        generator: Optional[Generator] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.table = dict(table if table is not None else DEFAULT_CATEGORIES)
        self.generator = generator
        self.rng = rng or random.Random()

    @property
    def can_generate(self) -> bool:
        return self.generator is not None

    def list_defaults(self) -> List[str]:
        return sorted(self.table.keys())

    def get_default(self, name: str) -> CategoryChoice:
        words = self.table.get(name)
        if words is None:
            raise NotFound(f"Unknown category: {name}", code="CATEGORY_NOT_FOUND")
        return CategoryChoice(category_name=name, words=list(words))

    def pick_random_default(self) -> CategoryChoice:
        name = self.rng.choice(sorted(self.table.keys()))
        return self.get_default(name)

    async def pick_category(self, prompt: Optional[str] = None) -> CategoryChoice:
        """
        Ask the external generator for a category. Failures propagate;
        the caller decides whether to fall back to a static pick.
        """
        if self.generator is None:
            raise TransientIO("Category generation is not configured", code="CATEGORY_UNAVAILABLE")

        prompt = (prompt or "").strip() or None
        payload = await self.generator(prompt)
        choice = validate_generated(payload)
        logger.info("Generated category %r with %d words", choice.category_name, len(choice.words))
        return choice
