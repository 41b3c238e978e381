from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

import requests

from .config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_TIMEOUT_S,
    LIVE_CONFIDENCE,
    MAX_TOKENS,
    TEMPERATURE,
    UNKNOWN_SPECIES_TAG,
    VISION_PROMPT,
)
from .contracts import ClassificationResult
from .errors import ClassifierUnavailable
from .io import ImagePayload, to_data_uri

logger = logging.getLogger(__name__)


def _strip_code_fence(text: str) -> str:
    """
    Models sometimes wrap JSON in ``` / ```json fences; drop the fence lines.
    """
    s = text.strip()
    if not s.startswith("```"):
        return s
    s = s[3:]
    if s[:4].lower() == "json":
        s = s[4:]
    if s.rstrip().endswith("```"):
        s = s.rstrip()[:-3]
    return s.strip()


def _is_true(value: Any) -> bool:
    if value is True:
        return True
    return isinstance(value, str) and value.strip().lower() == "true"


def tags_from_analysis(analysis: Dict[str, Any]) -> List[str]:
    """
    Map the four-field structured answer onto condition tags.
    Unknown fields are ignored; missing fields count as absent.
    Any other named animal maps to UnknownSpecies.
    """
    tags: List[str] = []
    species = analysis.get("animalType")
    s = species.strip().lower() if isinstance(species, str) else species
    if s == "dog":
        tags.append("Dog")
    elif s == "cat":
        tags.append("Cat")
    elif s:
        tags.append(UNKNOWN_SPECIES_TAG)
    if _is_true(analysis.get("hasInjury")):
        tags.append("ApparentInjury")
    if _is_true(analysis.get("isMalnourished")):
        tags.append("Malnourished")
    if _is_true(analysis.get("hasCollar")):
        tags.append("WearingCollar")
    return tags


def _first_message_content(data: Any) -> str:
    """choices[0].message.content, or "" for any other shape."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""


def parse_content(content: str) -> Dict[str, Any]:
    try:
        obj = json.loads(_strip_code_fence(content))
    except json.JSONDecodeError as e:
        raise ClassifierUnavailable(f"Unparseable classifier response: {e}") from e
    if not isinstance(obj, dict):
        raise ClassifierUnavailable(f"Expected a JSON object, got {type(obj).__name__}")
    return obj


class LiveClassifier:
    """Remote vision model behind an OpenAI-compatible chat completions endpoint."""

    name = "live"

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def _chat_completion(self, image_url: str) -> str:
        if not self.api_key:
            raise ClassifierUnavailable("Missing GROQ_API_KEY")

        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url}},
                    ],
                }
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": TEMPERATURE,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=headers,
                timeout=self.timeout_s,
            )
        except requests.RequestException as e:
            raise ClassifierUnavailable(f"Classifier request failed: {e}") from e

        if not resp.ok:
            raise ClassifierUnavailable(f"Classifier API error ({resp.status_code}): {resp.text[:200]}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ClassifierUnavailable("Classifier returned a non-JSON body") from e

        content = _first_message_content(data)
        if not content.strip():
            raise ClassifierUnavailable("Classifier returned empty response")
        return content

    def classify(self, image: ImagePayload) -> ClassificationResult:
        content = self._chat_completion(to_data_uri(image))
        tags = tags_from_analysis(parse_content(content))
        if not tags:
            raise ClassifierUnavailable("Classifier did not detect any valid animal information")
        logger.debug("live classifier tags=%s", tags)
        return ClassificationResult(tags=tags, confidence=LIVE_CONFIDENCE, source="live")
