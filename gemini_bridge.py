"""Bridge to Google Gemini API for palace story generation."""

import json
import logging
import ssl
import time
import urllib.error
import urllib.request

import certifi

from palace_config import DEFAULT_MODEL

log = logging.getLogger("palace")

GEMINI_TIMEOUT = 60  # seconds
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={key}"

GENERATION_CONFIG = {
    "temperature": 0.8,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 500,
}

_ssl_ctx = ssl.create_default_context(cafile=certifi.where())


class GeminiError(Exception):
    """Upstream failure: missing key, HTTP error, network error or empty output."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_request_body(prompt: str) -> dict:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": dict(GENERATION_CONFIG),
    }


def _extract_text(response_data: dict) -> str:
    """Text of the first part of the first candidate, or "" when absent."""
    candidates = response_data.get("candidates") or []
    if not candidates:
        block_reason = (response_data.get("promptFeedback") or {}).get("blockReason", "")
        if block_reason:
            log.info("    gemini_bridge: prompt blocked (%s)", block_reason)
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return ""
    return parts[0].get("text") or ""


# ---------------------------------------------------------------------------
# Story call
# ---------------------------------------------------------------------------

def call_gemini_story(prompt: str, gemini_cfg: dict, model: str | None = None) -> str:
    """Send one generation request and return the raw model text.

    Raises GeminiError on any upstream failure. No retries.
    """
    api_key = gemini_cfg.get("api_key", "")
    if not api_key:
        raise GeminiError("Gemini API key not configured")
    model = model or gemini_cfg.get("model") or DEFAULT_MODEL

    payload = json.dumps(_make_request_body(prompt)).encode("utf-8")
    req = urllib.request.Request(
        GEMINI_URL.format(model=model, key=api_key),
        data=payload,
        headers={"Content-Type": "application/json"},
    )

    log.info("    gemini_bridge: calling API model=%s key=...%s prompt_len=%d",
             model, api_key[-6:], len(prompt))
    t0 = time.time()
    try:
        with urllib.request.urlopen(req, timeout=GEMINI_TIMEOUT, context=_ssl_ctx) as resp:
            data = json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        body_text = e.read().decode("utf-8", errors="replace")[:300]
        log.info("    gemini_bridge: HTTP %d — %s", e.code, body_text)
        raise GeminiError(f"Gemini API error: {e.code}") from e
    except urllib.error.URLError as e:
        raise GeminiError(f"Gemini API connection failed: {e.reason}") from e
    except TimeoutError as e:
        raise GeminiError("Gemini API connection failed: timeout") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise GeminiError(f"Gemini API returned an unreadable body: {e}") from e

    text = _extract_text(data) if isinstance(data, dict) else ""
    log.info("    gemini_bridge: OK in %.1fs response_len=%d", time.time() - t0, len(text))
    if not text:
        raise GeminiError("Pas de contenu retourné par Gemini")
    return text
