from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping, Optional, Sequence, Union

from .classifier import ImageClassifier, build_classifier
from .config import (
    BASE_PRIORITY,
    INJURY_WEIGHT,
    MALNOURISHED_WEIGHT,
    MAX_PRIORITY,
    SPECIES_TAGS,
    UNKNOWN_SPECIES_TAG,
    Settings,
)
from .contracts import Coordinates, TriageResult
from .errors import ClassificationFailed
from .io import ImagePayload
from .simulated_classifier import SimulatedClassifier

logger = logging.getLogger(__name__)

CoordinatesLike = Union[Coordinates, Mapping[str, Any]]

_FOUR_PLACES = Decimal("0.0001")


def normalize_species(tags: Sequence[str]) -> List[str]:
    """
    Put UnknownSpecies at the front when neither Dog nor Cat is present.
    A sentinel already in the sequence is moved, not repeated.
    """
    out = list(tags)
    if not any(t in SPECIES_TAGS for t in out):
        out = [UNKNOWN_SPECIES_TAG] + [t for t in out if t != UNKNOWN_SPECIES_TAG]
    return out


def score_priority(tags: Sequence[str]) -> int:
    """
    base 1, +3 injury, +2 malnourished, capped at 5.
    Depends on tag membership only; 2 is unreachable.
    """
    score = BASE_PRIORITY
    if "ApparentInjury" in tags:
        score += INJURY_WEIGHT
    if "Malnourished" in tags:
        score += MALNOURISHED_WEIGHT
    return min(score, MAX_PRIORITY)


def _fixed4(value: float) -> str:
    # Exact binary value, ties away from zero.
    return format(Decimal(value).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP), "f")


def format_address(coords: Coordinates) -> str:
    # Placeholder for reverse geocoding.
    return f"Near {_fixed4(coords.latitude)}, {_fixed4(coords.longitude)}"


class TriageEngine:
    """
    Stateless: one classifier call per triage(), then pure transforms.

    `classifier` serves normal requests (usually live with simulated fallback);
    `simulated` serves requests that force simulation.
    """

    def __init__(
        self,
        classifier: ImageClassifier,
        simulated: Optional[ImageClassifier] = None,
        force_simulation: bool = False,
    ):
        self.classifier = classifier
        self.simulated = simulated if simulated is not None else SimulatedClassifier()
        self.force_simulation = force_simulation

    @classmethod
    def from_settings(cls, settings: Settings) -> "TriageEngine":
        simulated = SimulatedClassifier(seed=settings.simulation_seed)
        return cls(
            build_classifier(settings, simulated),
            simulated=simulated,
            force_simulation=settings.force_simulation,
        )

    def _pick(self, force_simulation: Optional[bool]) -> ImageClassifier:
        force = self.force_simulation if force_simulation is None else force_simulation
        return self.simulated if force else self.classifier

    def triage(
        self,
        image: ImagePayload,
        coordinates: CoordinatesLike,
        force_simulation: Optional[bool] = None,
    ) -> TriageResult:
        coords = coordinates if isinstance(coordinates, Coordinates) else Coordinates.model_validate(coordinates)

        classifier = self._pick(force_simulation)
        result = classifier.classify(image)
        if not result.tags:
            raise ClassificationFailed(f"{classifier.name} classifier produced no tags")
        logger.debug("classified via %s: tags=%s confidence=%.2f", result.source, result.tags, result.confidence)

        tags = normalize_species(result.tags)
        return TriageResult(
            triageTags=tags,
            priorityScore=score_priority(tags),
            readableAddress=format_address(coords),
        )
