"""Canned phrases the avatar says between answers."""

import random
from enum import Enum
from typing import Mapping, Optional, Sequence

from avatar.core.config import PhrasesConfig


class PhraseCategory(Enum):
    """Situations that have a canned phrase."""

    GREETING = "greeting"
    FAREWELL = "farewell"
    FAILURE = "failure"
    ERROR = "error"


class PhrasePicker:
    """Picks a random phrase for a category.

    Every category must have at least one phrase; this is checked when the
    picker is built so ``pick`` itself cannot fail.
    """

    def __init__(
        self,
        phrases: Mapping[PhraseCategory, Sequence[str]],
        rng: Optional[random.Random] = None,
    ) -> None:
        missing = [c.value for c in PhraseCategory if not phrases.get(c)]
        if missing:
            raise ValueError(f"No phrases configured for: {', '.join(missing)}")
        self._phrases = {c: tuple(phrases[c]) for c in PhraseCategory}
        self._rng = rng or random.Random()

    @classmethod
    def from_config(
        cls, config: PhrasesConfig, rng: Optional[random.Random] = None
    ) -> "PhrasePicker":
        return cls(
            {c: getattr(config, c.value) for c in PhraseCategory},
            rng=rng,
        )

    def phrases(self, category: PhraseCategory) -> tuple[str, ...]:
        return self._phrases[category]

    def pick(self, category: PhraseCategory) -> str:
        """Return one phrase of the category, uniformly at random."""
        return self._rng.choice(self._phrases[category])
