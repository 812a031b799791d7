"""Flask backend for Palais Mental: memory palace story generation."""

import logging
import time

from flask import Flask, jsonify, request

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    format="[%(asctime)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    level=logging.INFO,
)
log = logging.getLogger("palace")

from palace_config import DATA_DIR, get_gemini_cfg, is_debug
from gemini_bridge import GeminiError, call_gemini_story
from llm_trace import write_trace
from prompts import build_story_prompt
from rate_limiter import RATE_LIMIT, WINDOW_SECONDS, RateLimiter, client_identifier
from story_parser import Fallback, parse_story_response, story_payload

# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
MSG_METHOD_NOT_ALLOWED = "Method not allowed"
MSG_RATE_LIMITED = f"Trop de requêtes. Limite: {RATE_LIMIT} par heure."
MSG_PROMPT_REQUIRED = "Prompt requis"
MSG_GENERATION_FAILED = "Erreur de génération d'histoire"

# Process-wide; entries are dropped on restart. Swap for a shared store when
# running more than one instance.
rate_limiter = RateLimiter()

# ---------------------------------------------------------------------------
# Flask App
# ---------------------------------------------------------------------------
app = Flask(__name__)


@app.errorhandler(405)
def method_not_allowed(_e):
    return jsonify({"error": MSG_METHOD_NOT_ALLOWED}), 405


@app.errorhandler(500)
def internal_error(_e):
    return jsonify({"error": MSG_GENERATION_FAILED}), 500


def _upstream_error(err: Exception):
    body = {"error": MSG_GENERATION_FAILED}
    if is_debug():
        body["details"] = str(err)
    return jsonify(body), 500


def _normalize_choices(raw) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [str(c) for c in raw if c is not None]


@app.route("/api/generate-story", methods=["POST"], provide_automatic_options=False)
def api_generate_story():
    """Generate the next palace scene: story, exactly 3 choices, memory tip."""
    t_start = time.time()

    client_id = client_identifier(request.headers, request.remote_addr)
    if not rate_limiter.allow(client_id):
        log.info("/api/generate-story 429 client=%s", client_id)
        return jsonify({"error": MSG_RATE_LIMITED, "retryAfter": WINDOW_SECONDS}), 429

    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return jsonify({"error": MSG_PROMPT_REQUIRED}), 400
    prompt = body.get("prompt")
    if not prompt or not isinstance(prompt, str):
        return jsonify({"error": MSG_PROMPT_REQUIRED}), 400
    choices = _normalize_choices(body.get("choices", []))

    log.info("/api/generate-story START client=%s prompt=%s choices=%d",
             client_id, prompt[:30], len(choices))

    system_prompt = build_story_prompt(prompt, choices)
    gemini_cfg = get_gemini_cfg()

    t0 = time.time()
    try:
        content = call_gemini_story(system_prompt, gemini_cfg)
    except GeminiError as e:
        log.error("/api/generate-story upstream error: %s", e)
        return _upstream_error(e)
    log.info("  gemini_call: %.1fs", time.time() - t0)

    result = parse_story_response(content)
    if isinstance(result, Fallback):
        write_trace(
            data_dir=DATA_DIR,
            stage="story_fallback",
            payload={"prompt": prompt, "choices": choices, "content": content},
            client_id=client_id,
            tags={"reason": result.reason},
        )

    log.info("/api/generate-story DONE total=%.1fs fallback=%s",
             time.time() - t_start, isinstance(result, Fallback))
    return jsonify(story_payload(result))


@app.route("/api/status")
def api_status():
    """Sanitized runtime info (no API key exposed)."""
    g = get_gemini_cfg()
    return jsonify({
        "ok": True,
        "model": g["model"],
        "has_api_key": bool(g["api_key"]),
        "rate_limit": RATE_LIMIT,
        "window_seconds": WINDOW_SECONDS,
    })


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app.run(debug=is_debug(), host="0.0.0.0", port=5051)
