from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import List

import pytest

from stray_triage.config import Settings
from stray_triage.contracts import ClassificationResult
from stray_triage.errors import ClassificationFailed
from stray_triage.simulated_classifier import VOCABULARY, SimulatedClassifier
from stray_triage.triage import TriageEngine


@dataclass
class _FakeClassifier:
    tags: List[str]
    name: str = "fake"
    calls: int = 0

    def classify(self, image):
        self.calls += 1
        return ClassificationResult(tags=list(self.tags), confidence=0.9, source="live")


@dataclass
class _SequenceClassifier:
    batches: List[List[str]] = field(default_factory=list)
    name: str = "sequence"

    def classify(self, image):
        return ClassificationResult(tags=self.batches.pop(0), confidence=0.9, source="live")


class _FailingResp:
    ok = False
    status_code = 503
    text = "service unavailable"

    def json(self):
        return {}


def test_dog_with_injury_scenario():
    engine = TriageEngine(_FakeClassifier(["Dog", "ApparentInjury"]))
    result = engine.triage("QUJD", {"latitude": 40.7128, "longitude": -74.0060})

    assert result.triageTags == ["Dog", "ApparentInjury"]
    assert result.priorityScore == 4
    assert result.readableAddress == "Near 40.7128, -74.0060"


def test_malnourished_without_species_scenario():
    engine = TriageEngine(_FakeClassifier(["Malnourished"]))
    result = engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0})

    assert result.triageTags == ["UnknownSpecies", "Malnourished"]
    assert result.priorityScore == 3


def test_cat_injured_and_malnourished_caps_at_five():
    engine = TriageEngine(_FakeClassifier(["Cat", "ApparentInjury", "Malnourished"]))
    result = engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0})
    assert result.priorityScore == 5


def test_empty_classification_is_total_failure():
    engine = TriageEngine(_FakeClassifier([]))
    with pytest.raises(ClassificationFailed):
        engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0})


def test_invalid_coordinates_rejected_before_classifier():
    fake = _FakeClassifier(["Dog"])
    engine = TriageEngine(fake)
    with pytest.raises(ValueError):
        engine.triage("QUJD", {"latitude": float("nan"), "longitude": 2.0})
    assert fake.calls == 0


def test_force_simulation_per_call_skips_classifier():
    fake = _FakeClassifier(["Dog"])
    engine = TriageEngine(fake, simulated=SimulatedClassifier(seed=7))

    result = engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0}, force_simulation=True)

    assert fake.calls == 0
    assert result.priorityScore in {1, 3, 4, 5}


def test_engine_level_force_can_be_overridden_per_call():
    fake = _FakeClassifier(["Cat"])
    engine = TriageEngine(fake, force_simulation=True)

    engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0})
    assert fake.calls == 0
    engine.triage("QUJD", {"latitude": 1.0, "longitude": 2.0}, force_simulation=False)
    assert fake.calls == 1


def test_simulated_draws_two_or_three_distinct_tags():
    for seed in range(200):
        result = SimulatedClassifier(rng=random.Random(seed)).classify(b"")
        assert len(result.tags) in (2, 3)
        assert len(set(result.tags)) == len(result.tags)
        assert set(result.tags) <= set(VOCABULARY)
        assert result.confidence == 0.5
        assert result.source == "simulated"


def test_simulated_is_reproducible_with_seed():
    a = [SimulatedClassifier(seed=42).classify(b"").tags for _ in range(3)]
    b = [SimulatedClassifier(seed=42).classify(b"").tags for _ in range(3)]
    assert a == b


def test_species_normalized_per_request():
    engine = TriageEngine(_SequenceClassifier([["Malnourished", "WearingCollar"], ["Cat", "Malnourished"]]))
    first = engine.triage("QUJD", {"latitude": 0, "longitude": 0})
    second = engine.triage("QUJD", {"latitude": 0, "longitude": 0})
    assert first.triageTags[0] == "UnknownSpecies"
    assert second.triageTags == ["Cat", "Malnourished"]


def test_live_failure_falls_back_to_simulation(monkeypatch):
    from stray_triage import live_classifier as live_mod

    monkeypatch.setattr(live_mod.requests, "post", lambda *a, **k: _FailingResp())
    engine = TriageEngine.from_settings(Settings(api_key="test-key", simulation_seed=3))

    result = engine.triage("QUJD", {"latitude": 10.5, "longitude": 20.25})

    assert 2 <= len(result.triageTags) <= 4
    assert result.readableAddress == "Near 10.5000, 20.2500"


def test_live_success_used_when_configured(monkeypatch):
    from stray_triage import live_classifier as live_mod

    class _OkResp:
        ok = True
        status_code = 200
        text = ""

        def json(self):
            return {"choices": [{"message": {"content": '{"animalType": "Dog", "isMalnourished": true}'}}]}

    monkeypatch.setattr(live_mod.requests, "post", lambda *a, **k: _OkResp())
    engine = TriageEngine.from_settings(Settings(api_key="test-key"))

    result = engine.triage("QUJD", {"latitude": 0, "longitude": 0})

    assert result.triageTags == ["Dog", "Malnourished"]
    assert result.priorityScore == 3


def test_missing_credential_falls_back_without_network(monkeypatch):
    from stray_triage import live_classifier as live_mod

    def _boom(*_a, **_k):
        raise AssertionError("network should not be touched")

    monkeypatch.setattr(live_mod.requests, "post", _boom)
    engine = TriageEngine.from_settings(Settings(api_key=None))

    result = engine.triage("QUJD", {"latitude": 0, "longitude": 0})
    assert result.priorityScore in {1, 3, 4, 5}


def test_forced_simulation_settings_never_call_live(monkeypatch):
    from stray_triage import live_classifier as live_mod

    def _boom(*_a, **_k):
        raise AssertionError("network should not be touched")

    monkeypatch.setattr(live_mod.requests, "post", _boom)
    engine = TriageEngine.from_settings(Settings(api_key="test-key", force_simulation=True))

    engine.triage("QUJD", {"latitude": 0, "longitude": 0})


def test_other_animal_from_live_model_is_deterministic(monkeypatch):
    from stray_triage import live_classifier as live_mod

    class _BirdResp:
        ok = True
        status_code = 200
        text = ""

        def json(self):
            content = '{"animalType": "Bird", "hasInjury": false, "isMalnourished": false, "hasCollar": false}'
            return {"choices": [{"message": {"content": content}}]}

    monkeypatch.setattr(live_mod.requests, "post", lambda *a, **k: _BirdResp())

    outcomes = set()
    for seed in range(20):
        engine = TriageEngine.from_settings(Settings(api_key="test-key", simulation_seed=seed))
        result = engine.triage("QUJD", {"latitude": 0, "longitude": 0})
        outcomes.add((tuple(result.triageTags), result.priorityScore))

    assert outcomes == {(("UnknownSpecies",), 1)}
