from __future__ import annotations

import math
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

ConditionTag = Literal[
    "Dog",
    "Cat",
    "ApparentInjury",
    "Malnourished",
    "WearingCollar",
    "UnknownSpecies",
]


class Coordinates(BaseModel):
    latitude: float
    longitude: float

    @field_validator("latitude", "longitude")
    @classmethod
    def _finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("coordinate must be finite")
        return v


class ClassificationResult(BaseModel):
    tags: List[ConditionTag] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    source: Literal["live", "simulated"] = "simulated"


class TriageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    triageTags: List[ConditionTag]
    priorityScore: int = Field(ge=1, le=5)
    readableAddress: str


class Report(BaseModel):
    """Persisted shape; mirrors what the dashboard reads."""

    id: str
    timestamp: str
    imageData: str
    gpsCoordinates: Coordinates
    triageTags: List[ConditionTag]
    priorityScore: int
    readableAddress: str
