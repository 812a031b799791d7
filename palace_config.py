"""Runtime configuration: llm_config.json (auto-reloads on file change) plus env.

Environment variables win over the file:
  GEMINI_API_KEY, GEMINI_MODEL, PALACE_ENV ("development" enables error details)
"""

import json
import logging
import os

log = logging.getLogger("palace")

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_PATH = os.path.join(BASE_DIR, "llm_config.json")
DATA_DIR = os.path.join(BASE_DIR, "data")

DEFAULT_MODEL = "gemini-1.5-flash-latest"

_config_cache: dict | None = None
_config_mtime: float = 0


def _load_file() -> dict:
    global _config_cache, _config_mtime
    try:
        mtime = os.path.getmtime(CONFIG_PATH)
    except OSError:
        _config_cache, _config_mtime = {}, 0
        return _config_cache

    if _config_cache is None or mtime != _config_mtime:
        try:
            with open(CONFIG_PATH, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            _config_cache = loaded if isinstance(loaded, dict) else {}
            log.info("config: loaded %s", CONFIG_PATH)
        except (OSError, json.JSONDecodeError) as e:
            log.warning("config: cannot read %s — %s", CONFIG_PATH, e)
            _config_cache = {}
        _config_mtime = mtime
    return _config_cache


def get_config() -> dict:
    return dict(_load_file())


def get_gemini_cfg() -> dict:
    """Return {"api_key": ..., "model": ...} with env overrides applied."""
    g = get_config().get("gemini", {})
    if not isinstance(g, dict):
        g = {}
    return {
        "api_key": os.environ.get("GEMINI_API_KEY") or g.get("api_key", ""),
        "model": os.environ.get("GEMINI_MODEL") or g.get("model", DEFAULT_MODEL),
    }


def is_debug() -> bool:
    env = os.environ.get("PALACE_ENV")
    if env:
        return env == "development"
    return bool(get_config().get("debug", False))


def reset_cache():
    global _config_cache, _config_mtime
    _config_cache = None
    _config_mtime = 0
