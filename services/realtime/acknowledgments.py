"""Short spoken acknowledgments played while the real answer is prepared."""

from __future__ import annotations

import random
from typing import Optional, Sequence

ACKNOWLEDGMENTS = (
	"Momentje, ik zoek het even voor je op.",
	"Even kijken, een momentje.",
	"Ik ga het voor je uitzoeken, momentje.",
	"Goeie vraag, even checken.",
	"Ik duik er even in, wacht.",
)


class AcknowledgmentPicker:
	"""Pick one phrase per turn from a fixed set, using an injectable random source."""

	def __init__(self, phrases: Sequence[str] = ACKNOWLEDGMENTS, rng: Optional[random.Random] = None) -> None:
		phrases = tuple(phrase for phrase in phrases if phrase and phrase.strip())
		if not phrases:
			raise ValueError("At least one acknowledgment phrase is required.")
		self.phrases = phrases
		self.rng = rng or random.Random()

	@classmethod
	def seeded(cls, seed: int, phrases: Sequence[str] = ACKNOWLEDGMENTS) -> "AcknowledgmentPicker":
		return cls(phrases, random.Random(seed))

	def pick(self) -> str:
		return self.rng.choice(self.phrases)
