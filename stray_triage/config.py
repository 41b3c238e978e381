from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_MODEL = "meta-llama/llama-4-scout-17b-16e-instruct"
DEFAULT_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_TIMEOUT_S = 20.0
DEFAULT_DB_PATH = "database/reports.json"

LIVE_CONFIDENCE = 0.85
SIMULATED_CONFIDENCE = 0.5

MAX_TOKENS = 300
TEMPERATURE = 0.1

# Closed tag vocabulary. Order is the order tags are emitted in.
SPECIES_TAGS = ("Dog", "Cat")
CONDITION_TAGS = ("ApparentInjury", "Malnourished", "WearingCollar")
UNKNOWN_SPECIES_TAG = "UnknownSpecies"

INJURY_WEIGHT = 3
MALNOURISHED_WEIGHT = 2
BASE_PRIORITY = 1
MAX_PRIORITY = 5

VISION_PROMPT = (
    "Analyze this image of an animal. Identify: "
    "1) Animal type (Dog or Cat), "
    "2) If there are visible injuries, "
    "3) If the animal appears malnourished/thin, "
    "4) If the animal is wearing a collar. "
    "Respond ONLY with a valid JSON object in this exact format: "
    '{"animalType": "Dog" or "Cat", "hasInjury": true or false, '
    '"isMalnourished": true or false, "hasCollar": true or false}'
)


def _env_bool(key: str, default: bool) -> bool:
    v = os.getenv(key, "").strip().lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str) -> Optional[int]:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = DEFAULT_TIMEOUT_S
    force_simulation: bool = False
    simulation_seed: Optional[int] = None
    db_path: str = DEFAULT_DB_PATH
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000


def get_settings() -> Settings:
    """
    Snapshot the process environment once. Callers pass the result down;
    nothing below the entry points reads os.environ.
    """
    load_dotenv(override=False)
    return Settings(
        api_key=os.getenv("GROQ_API_KEY") or None,
        model=os.getenv("GROQ_MODEL") or DEFAULT_MODEL,
        base_url=(os.getenv("GROQ_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        timeout_s=_env_float("GROQ_TIMEOUT_S", DEFAULT_TIMEOUT_S),
        force_simulation=_env_bool("FORCE_SIMULATION", False),
        simulation_seed=_env_int("SIMULATION_SEED"),
        db_path=os.getenv("REPORTS_DB_PATH") or DEFAULT_DB_PATH,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
