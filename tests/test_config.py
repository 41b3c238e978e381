from __future__ import annotations

from stray_triage.config import DEFAULT_MODEL, get_settings


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for key in ("GROQ_API_KEY", "GROQ_MODEL", "GROQ_TIMEOUT_S", "FORCE_SIMULATION", "SIMULATION_SEED"):
        monkeypatch.delenv(key, raising=False)

    s = get_settings()

    assert s.api_key is None
    assert s.model == DEFAULT_MODEL
    assert s.force_simulation is False
    assert s.simulation_seed is None


def test_overrides(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("GROQ_API_KEY", "k")
    monkeypatch.setenv("GROQ_MODEL", "other-model")
    monkeypatch.setenv("GROQ_TIMEOUT_S", "not-a-number")
    monkeypatch.setenv("FORCE_SIMULATION", "yes")
    monkeypatch.setenv("SIMULATION_SEED", "9")
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9100")

    s = get_settings()

    assert s.api_key == "k"
    assert s.model == "other-model"
    assert s.timeout_s == 20.0
    assert s.force_simulation is True
    assert s.simulation_seed == 9
    assert s.host == "127.0.0.1"
    assert s.port == 9100
