"""Shared test fixtures for Palais Mental tests."""

import json

import pytest


# ---------------------------------------------------------------------------
# Sample data constants
# ---------------------------------------------------------------------------

SAMPLE_STORY = {
    "story": "Vous vous trouvez devant un magnifique palais des sciences. Les colonnes sont ornées de formules mathématiques gravées dans le marbre blanc.",
    "choices": [
        "Entrer par la grande porte principale",
        "Explorer les jardins de botanique sur le côté",
        "Examiner les inscriptions sur les colonnes",
    ],
    "memoryTip": "Associez chaque colonne à une matière scientifique différente",
}

SAMPLE_NEXT_STORY = {
    "story": "Le hall d'entrée s'ouvre sur une rotonde où trône un pendule de Foucault.",
    "choices": [
        "Suivre le balancement du pendule",
        "Gravir l'escalier de marbre",
        "Pousser la porte de la bibliothèque",
    ],
    "memoryTip": "Le pendule rythme la liste : un balancement, un élément.",
}


def gemini_response(text: str) -> dict:
    """Minimal generateContent response body carrying ``text``."""
    return {
        "candidates": [
            {"content": {"parts": [{"text": text}], "role": "model"}, "finishReason": "STOP"},
        ],
    }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_story():
    return json.loads(json.dumps(SAMPLE_STORY))


@pytest.fixture
def sample_story_text():
    return json.dumps(SAMPLE_STORY, ensure_ascii=False)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Point config at an empty tmp llm_config.json and clear env overrides."""
    import palace_config as config

    cfg_path = tmp_path / "llm_config.json"
    monkeypatch.setattr(config, "CONFIG_PATH", str(cfg_path))
    for var in ("GEMINI_API_KEY", "GEMINI_MODEL", "PALACE_ENV"):
        monkeypatch.delenv(var, raising=False)
    config.reset_cache()
    yield cfg_path
    config.reset_cache()
