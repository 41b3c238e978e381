from __future__ import annotations

import logging
from typing import Optional, Protocol

from .config import Settings
from .contracts import ClassificationResult
from .errors import ClassifierUnavailable
from .io import ImagePayload
from .live_classifier import LiveClassifier
from .simulated_classifier import SimulatedClassifier

logger = logging.getLogger(__name__)


class ImageClassifier(Protocol):
    name: str

    def classify(self, image: ImagePayload) -> ClassificationResult:
        ...


class FallbackClassifier:
    """
    Try the primary once; on ClassifierUnavailable return the fallback's answer.
    No retries.
    """

    def __init__(self, primary: ImageClassifier, fallback: ImageClassifier):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def classify(self, image: ImagePayload) -> ClassificationResult:
        try:
            return self.primary.classify(image)
        except ClassifierUnavailable as e:
            logger.warning("%s classifier unavailable, using %s: %s", self.primary.name, self.fallback.name, e)
            return self.fallback.classify(image)


def build_classifier(settings: Settings, simulated: Optional[SimulatedClassifier] = None) -> ImageClassifier:
    """
    force_simulation -> simulated only; otherwise live, falling back to simulated.
    """
    if simulated is None:
        simulated = SimulatedClassifier(seed=settings.simulation_seed)
    if settings.force_simulation:
        return simulated
    live = LiveClassifier(
        api_key=settings.api_key,
        model=settings.model,
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
    )
    return FallbackClassifier(live, simulated)
