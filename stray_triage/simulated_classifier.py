from __future__ import annotations

import random
from typing import Optional

from .config import CONDITION_TAGS, SIMULATED_CONFIDENCE, SPECIES_TAGS
from .contracts import ClassificationResult
from .io import ImagePayload

VOCABULARY = SPECIES_TAGS + CONDITION_TAGS


class SimulatedClassifier:
    """
    Stand-in used when the live model is disabled or down.

    Draws 2 or 3 distinct tags from the full vocabulary; pass a seeded
    random.Random to make the draw reproducible.
    """

    name = "simulated"

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng if rng is not None else random.Random(seed)

    def classify(self, image: ImagePayload) -> ClassificationResult:
        k = self.rng.choice((2, 3))
        tags = self.rng.sample(VOCABULARY, k)
        return ClassificationResult(tags=tags, confidence=SIMULATED_CONFIDENCE, source="simulated")
